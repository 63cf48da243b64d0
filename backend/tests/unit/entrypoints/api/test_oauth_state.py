"""Tests for the OAuth state store."""

from unittest.mock import patch

from wikihub.entrypoints.api.oauth_state import OAuthStateStore


class TestOAuthStateStore:
    """Tests for OAuthStateStore."""

    def test_roundtrip(self) -> None:
        """Data bound to a state comes back on consume."""
        store = OAuthStateStore()
        state = store.generate({"team_id": "abc"})

        assert store.consume(state) == {"team_id": "abc"}

    def test_single_use(self) -> None:
        """A state cannot be consumed twice."""
        store = OAuthStateStore()
        state = store.generate()

        assert store.consume(state) == {}
        assert store.consume(state) is None

    def test_unknown_state(self) -> None:
        """Unknown states are rejected."""
        assert OAuthStateStore().consume("nope") is None

    def test_expired_state(self) -> None:
        """Expired states are rejected."""
        store = OAuthStateStore(ttl_seconds=10)
        with patch("wikihub.entrypoints.api.oauth_state.time.monotonic", return_value=100.0):
            state = store.generate()
        with patch("wikihub.entrypoints.api.oauth_state.time.monotonic", return_value=111.0):
            assert store.consume(state) is None

    def test_states_are_unique(self) -> None:
        """Every call creates a new state."""
        store = OAuthStateStore()

        assert store.generate() != store.generate()

"""Short-lived store for OAuth ``state`` parameters."""

import secrets
import time


class OAuthStateStore:
    """Keeps the data bound to each outstanding OAuth redirect.

    A state is single use: ``consume`` removes it. Unconsumed states
    expire after ``ttl_seconds``.

    In-memory, so it only works with a single API process; replace with
    a shared store when running several.
    """

    def __init__(self, ttl_seconds: int = 600) -> None:
        """Initialize the store.

        Args:
            ttl_seconds: How long a state stays valid.
        """
        self.ttl_seconds = ttl_seconds
        self._states: dict[str, tuple[float, dict[str, str]]] = {}

    def generate(self, data: dict[str, str] | None = None) -> str:
        """Create a state and remember its data.

        Args:
            data: Values to recover on the callback.

        Returns:
            Random URL-safe state string.
        """
        self._purge()
        state = secrets.token_urlsafe(32)
        self._states[state] = (time.monotonic() + self.ttl_seconds, dict(data or {}))
        return state

    def consume(self, state: str) -> dict[str, str] | None:
        """Return and forget the data of a state, or None if unknown or expired."""
        entry = self._states.pop(state, None)
        if entry is None:
            return None
        expires_at, data = entry
        if time.monotonic() > expires_at:
            return None
        return data

    def _purge(self) -> None:
        now = time.monotonic()
        for state in [s for s, (expires_at, _) in self._states.items() if expires_at < now]:
            del self._states[state]

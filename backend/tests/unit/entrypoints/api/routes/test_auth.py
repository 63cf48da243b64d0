"""Tests for the transfer token exchange route."""

from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from wikihub.core.auth.jwt import create_access_token, create_transfer_token, decode_token
from wikihub.entrypoints.api.routes.auth import router


@pytest.fixture
def client() -> TestClient:
    """Create test client for the auth router."""
    app = FastAPI()
    app.include_router(router)
    return TestClient(app)


class TestExchangeTransferToken:
    """Test POST /auth/token."""

    def test_issues_access_token(self, client: TestClient) -> None:
        """Should trade a transfer token for an access token of the same user."""
        user_id, team_id = str(uuid4()), str(uuid4())
        token = create_transfer_token(user_id=user_id, team_id=team_id, role="admin")

        response = client.post("/auth/token", json={"token": token})

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["team_id"] == team_id
        assert data["role"] == "admin"
        payload = decode_token(data["access_token"])
        assert payload.type == "access"
        assert payload.sub == user_id

    def test_rejects_access_token(self, client: TestClient) -> None:
        """Should not re-issue from an access token."""
        token = create_access_token(user_id=str(uuid4()), team_id=str(uuid4()), role="member")

        response = client.post("/auth/token", json={"token": token})

        assert response.status_code == 401

    def test_rejects_garbage(self, client: TestClient) -> None:
        """Should reject a token that does not decode."""
        response = client.post("/auth/token", json={"token": "not-a-token"})

        assert response.status_code == 401

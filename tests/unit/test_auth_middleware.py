# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the authentication middleware."""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from src.api.middleware.auth import AuthMiddleware, CurrentUser, get_current_user
from src.core.config import get_settings
from src.domains.auth.jwt import JWTManager, TokenPayload
from src.models.common import ApprovalTier


def _payload(role: str, **scope: str) -> TokenPayload:
    return TokenPayload(
        sub="U-1", role=role, exp=2000000000, iat=1000000000, jti="t", **scope
    )


@pytest.fixture
def client() -> TestClient:
    """Create an app that echoes the authenticated user."""
    app = FastAPI()
    app.add_middleware(AuthMiddleware)

    @app.get("/health")
    async def health(user: CurrentUser | None = Depends(get_current_user)) -> dict:
        return {"user": user.id if user else None}

    @app.get("/whoami")
    async def whoami(user: CurrentUser | None = Depends(get_current_user)) -> dict:
        if user is None:
            return {"user": None}
        return {"user": user.id, "role": user.role, "school_id": user.school_id}

    return TestClient(app)


@pytest.fixture
def jwt_manager() -> JWTManager:
    """Create a manager with the application's settings."""
    return JWTManager(get_settings().jwt)


class TestAuthMiddleware:
    """Tests for AuthMiddleware."""

    def test_valid_token(self, client: TestClient, jwt_manager: JWTManager) -> None:
        """Test a bearer token populates the user."""
        token = jwt_manager.create_access_token("ADM-1", "school_admin", school_id="SCI")

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.json() == {"user": "ADM-1", "role": "school_admin", "school_id": "SCI"}

    def test_missing_token(self, client: TestClient) -> None:
        """Test requests without a token continue anonymously."""
        assert client.get("/whoami").json() == {"user": None}

    def test_invalid_token(self, client: TestClient) -> None:
        """Test a bad token is ignored rather than rejected."""
        response = client.get("/whoami", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 200
        assert response.json() == {"user": None}

    def test_expired_token(self, client: TestClient, jwt_manager: JWTManager) -> None:
        """Test an expired token leaves the request anonymous."""
        token = jwt_manager.create_access_token("STU-1", "student", expires_in_minutes=-1)

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.json() == {"user": None}

    def test_wrong_scheme(self, client: TestClient, jwt_manager: JWTManager) -> None:
        """Test only the Bearer scheme is accepted."""
        token = jwt_manager.create_access_token("STU-1", "student")

        response = client.get("/whoami", headers={"Authorization": f"Token {token}"})

        assert response.json() == {"user": None}

    def test_public_path_skips_auth(self, client: TestClient, jwt_manager: JWTManager) -> None:
        """Test public paths never decode the token."""
        token = jwt_manager.create_access_token("STU-1", "student")

        response = client.get("/health", headers={"Authorization": f"Bearer {token}"})

        assert response.json() == {"user": None}


class TestCurrentUser:
    """Tests for CurrentUser role helpers."""

    def test_senate_admin(self) -> None:
        """Test the senate administrator acts for the senate tier."""
        user = CurrentUser(_payload("senate_admin"))

        assert user.tier == ApprovalTier.SENATE
        assert user.is_admin
        assert user.is_approver
        assert user.is_senate_admin

    def test_department_admin(self) -> None:
        """Test a department administrator is not the senate."""
        user = CurrentUser(_payload("department_admin", department_id="CSC"))

        assert user.tier == ApprovalTier.DEPARTMENT
        assert user.department_id == "CSC"
        assert user.school_id is None
        assert not user.is_senate_admin

    @pytest.mark.parametrize("role", ["student", "lecturer"])
    def test_non_approvers(self, role: str) -> None:
        """Test students and lecturers have no tier."""
        user = CurrentUser(_payload(role))

        assert user.tier is None
        assert not user.is_admin
        assert not user.is_approver
        assert user.is_student == (role == "student")
        assert user.is_lecturer == (role == "lecturer")

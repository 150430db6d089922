# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for error translation."""

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel

from src.api.errors import add_error_handlers, classify, error_body, to_http_exception
from src.domains.academic_session.service import AcademicSessionConflictError
from src.domains.registration.service import RegistrationNotFoundError
from src.domains.results.exceptions import (
    ForceApproveDisabledError,
    IncompleteScoreError,
    InvalidTransitionError,
    MissingReasonError,
    NotAssignedError,
    NotEnrolledError,
    OutOfScopeError,
    ResultServiceError,
    ScoreRecordNotFoundError,
    ScoreValidationError,
    TierMismatchError,
)
from src.infrastructure.database.connection import DatabaseError


class TestClassify:
    """Tests for mapping exceptions to status and code."""

    @pytest.mark.parametrize(
        "exc,status_code,code",
        [
            (InvalidTransitionError(), 409, "INVALID_TRANSITION"),
            (MissingReasonError("x"), 422, "MISSING_REASON"),
            (NotEnrolledError("x"), 422, "NOT_ENROLLED"),
            (ScoreValidationError("x"), 422, "VALIDATION_ERROR"),
            (IncompleteScoreError("x"), 422, "VALIDATION_ERROR"),
            (TierMismatchError("x"), 403, "TIER_MISMATCH"),
            (OutOfScopeError("x"), 403, "OUT_OF_SCOPE"),
            (NotAssignedError("x"), 403, "NOT_ASSIGNED"),
            (ForceApproveDisabledError("x"), 403, "FORCE_APPROVE_DISABLED"),
            (ScoreRecordNotFoundError("x"), 404, "NOT_FOUND"),
            (RegistrationNotFoundError("x"), 404, "NOT_FOUND"),
            (AcademicSessionConflictError("x"), 409, "CONFLICT"),
            (DatabaseError("x"), 503, "PERSISTENCE_FAILURE"),
            (ResultServiceError("x"), 400, "RESULT_ERROR"),
            (RuntimeError("x"), 500, "INTERNAL_ERROR"),
        ],
    )
    def test_mapping(self, exc, status_code, code) -> None:
        """Test each domain error has its status and code."""
        assert classify(exc) == (status_code, code)


class TestToHttpException:
    """Tests for to_http_exception."""

    def test_carries_message(self) -> None:
        """Test the domain message is passed through."""
        http_exc = to_http_exception(InvalidTransitionError())

        assert http_exc.status_code == 409
        assert http_exc.detail == {
            "code": "INVALID_TRANSITION",
            "message": InvalidTransitionError.STALE_MESSAGE,
        }

    def test_hides_database_details(self) -> None:
        """Test database messages are not exposed."""
        http_exc = to_http_exception(DatabaseError("password authentication failed"))

        assert http_exc.detail["message"] == "Database unavailable"


class _Body(BaseModel):
    comments: str


@pytest.fixture
def client() -> TestClient:
    """Create a small app with the error handlers installed."""
    app = FastAPI()
    add_error_handlers(app)

    @app.get("/translated")
    async def translated() -> None:
        raise to_http_exception(TierMismatchError("wrong tier"))

    @app.get("/untranslated")
    async def untranslated() -> None:
        raise ScoreRecordNotFoundError("Score record missing")

    @app.get("/plain")
    async def plain() -> None:
        raise HTTPException(status_code=401, detail="Authentication required")

    @app.post("/validated")
    async def validated(body: _Body) -> dict:
        return body.model_dump()

    return TestClient(app)


class TestErrorHandlers:
    """Tests for the rendered error body."""

    def test_error_body(self) -> None:
        """Test the body shape."""
        assert error_body("NOT_FOUND", "gone") == {
            "error": {"code": "NOT_FOUND", "message": "gone"}
        }

    def test_translated_exception(self, client: TestClient) -> None:
        """Test a translated domain error keeps its code."""
        response = client.get("/translated")

        assert response.status_code == 403
        assert response.json() == error_body("TIER_MISMATCH", "wrong tier")

    def test_untranslated_domain_error(self, client: TestClient) -> None:
        """Test a domain error escaping a router is still rendered."""
        response = client.get("/untranslated")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_plain_http_exception(self, client: TestClient) -> None:
        """Test a string detail gets a code from the status."""
        response = client.get("/plain")

        assert response.status_code == 401
        assert response.json() == error_body("UNAUTHORIZED", "Authentication required")

    def test_request_validation(self, client: TestClient) -> None:
        """Test request validation errors share the body format."""
        response = client.post("/validated", json={})

        assert response.status_code == 422
        body = response.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert "comments" in body["error"]["message"]

    def test_unknown_route(self, client: TestClient) -> None:
        """Test routing errors are rendered too."""
        response = client.get("/nowhere")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

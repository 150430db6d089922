# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error translation and global exception handlers.

Every error response has the body ``{"error": {"code": ..., "message": ...}}``.
Routers translate domain exceptions with ``to_http_exception``; the global
handlers render those and catch any domain or database error a router did
not translate.
"""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.domains.academic_session.service import (
    AcademicSessionConflictError,
    AcademicSessionNotFoundError,
    AcademicSessionServiceError,
)
from src.domains.registration.service import (
    InvalidCourseSelectionError,
    RegistrationAlreadyReviewedError,
    RegistrationNotApprovedError,
    RegistrationNotFoundError,
    RegistrationServiceError,
)
from src.domains.results.exceptions import (
    ForceApproveDisabledError,
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

logger = logging.getLogger(__name__)

# Most specific classes first
ERROR_MAP: tuple[tuple[type[Exception], int, str], ...] = (
    (InvalidTransitionError, status.HTTP_409_CONFLICT, "INVALID_TRANSITION"),
    (MissingReasonError, status.HTTP_422_UNPROCESSABLE_ENTITY, "MISSING_REASON"),
    (NotEnrolledError, status.HTTP_422_UNPROCESSABLE_ENTITY, "NOT_ENROLLED"),
    (ScoreValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR"),
    (TierMismatchError, status.HTTP_403_FORBIDDEN, "TIER_MISMATCH"),
    (OutOfScopeError, status.HTTP_403_FORBIDDEN, "OUT_OF_SCOPE"),
    (NotAssignedError, status.HTTP_403_FORBIDDEN, "NOT_ASSIGNED"),
    (ForceApproveDisabledError, status.HTTP_403_FORBIDDEN, "FORCE_APPROVE_DISABLED"),
    (ScoreRecordNotFoundError, status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    (RegistrationNotFoundError, status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    (RegistrationAlreadyReviewedError, status.HTTP_409_CONFLICT, "ALREADY_REVIEWED"),
    (RegistrationNotApprovedError, status.HTTP_409_CONFLICT, "NOT_APPROVED"),
    (InvalidCourseSelectionError, status.HTTP_422_UNPROCESSABLE_ENTITY, "INVALID_COURSE_SELECTION"),
    (AcademicSessionNotFoundError, status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    (AcademicSessionConflictError, status.HTTP_409_CONFLICT, "CONFLICT"),
    (DatabaseError, status.HTTP_503_SERVICE_UNAVAILABLE, "PERSISTENCE_FAILURE"),
    (ResultServiceError, status.HTTP_400_BAD_REQUEST, "RESULT_ERROR"),
    (RegistrationServiceError, status.HTTP_400_BAD_REQUEST, "REGISTRATION_ERROR"),
    (AcademicSessionServiceError, status.HTTP_400_BAD_REQUEST, "ACADEMIC_SESSION_ERROR"),
)

_STATUS_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "BAD_REQUEST",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    status.HTTP_409_CONFLICT: "CONFLICT",
    status.HTTP_422_UNPROCESSABLE_ENTITY: "VALIDATION_ERROR",
    status.HTTP_503_SERVICE_UNAVAILABLE: "SERVICE_UNAVAILABLE",
}


def error_body(code: str, message: str) -> dict[str, dict[str, str]]:
    """Build the JSON error body."""
    return {"error": {"code": code, "message": message}}


def classify(exc: Exception) -> tuple[int, str]:
    """Return the HTTP status and error code for a domain exception."""
    for exc_type, status_code, code in ERROR_MAP:
        if isinstance(exc, exc_type):
            return status_code, code
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR"


def to_http_exception(exc: Exception) -> HTTPException:
    """Translate a domain exception into an HTTPException.

    Example:
        >>> try:
        ...     await service.advance(...)
        ... except ResultServiceError as e:
        ...     raise to_http_exception(e)
    """
    status_code, code = classify(exc)
    message = "Database unavailable" if isinstance(exc, DatabaseError) else str(exc)
    return HTTPException(
        status_code=status_code,
        detail={"code": code, "message": message},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTPException in the error body format."""
    if isinstance(exc.detail, dict) and "code" in exc.detail:
        body = error_body(exc.detail["code"], str(exc.detail.get("message", "")))
    else:
        code = _STATUS_CODES.get(exc.status_code, "ERROR")
        body = error_body(code, str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Render request validation errors."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body("VALIDATION_ERROR", "; ".join(messages)),
    )


async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render a domain or database error no router translated."""
    http_exc = to_http_exception(exc)
    if http_exc.status_code >= 500:
        logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
    return await http_exception_handler(request, http_exc)


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Render a raw SQLAlchemy error as a persistence failure."""
    logger.error("Database error on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_body("PERSISTENCE_FAILURE", "Database unavailable"),
    )


def add_error_handlers(app: FastAPI) -> None:
    """Register the global exception handlers on the application."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    for exc_type in (
        ResultServiceError,
        RegistrationServiceError,
        AcademicSessionServiceError,
        DatabaseError,
    ):
        app.add_exception_handler(exc_type, domain_exception_handler)

"""Centralized error handling for the presentation layer."""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from ..domain.exceptions import (
    AuthenticationRequired,
    CannotDeleteProtected,
    CategoryDoesNotExist,
    DomainError,
    DuplicateEmail,
    DuplicateTranslation,
    EditConflict,
    InactiveAccount,
    InvalidCredentials,
    InvalidRuntimeFormat,
    InvalidTokenFormat,
    RecordNotFound,
    TransientStorageError,
    ValidationFailed,
)
from ..logging_utils import log_validation_error
from .problem_details import (
    ErrorCodes,
    ProblemDetail,
    ProblemDetailFactory,
    field_errors_from_mapping,
)

PROBLEM_MEDIA_TYPE = "application/problem+json"


def problem_response(
    problem: ProblemDetail, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers,
    )


def _field_problem(
    errors: dict[str, Any], instance: str, code: str = ErrorCodes.FIELD_INVALID_VALUE
) -> ProblemDetail:
    for field, message in errors.items():
        log_validation_error(field, str(message))
    return ProblemDetailFactory.validation_failed(
        detail="the request contains invalid values",
        instance=instance,
        field_errors=field_errors_from_mapping(errors, code),
    )


def problem_for(error: DomainError, instance: str) -> ProblemDetail:
    """Map a domain error to the problem the client sees."""
    if isinstance(error, RecordNotFound):
        return ProblemDetailFactory.not_found(instance=instance)

    if isinstance(error, EditConflict):
        return ProblemDetailFactory.conflict(
            ErrorCodes.EDIT_CONFLICT,
            "unable to update the record due to an edit conflict, please try again",
            instance,
        )

    if isinstance(error, CannotDeleteProtected):
        return ProblemDetailFactory.conflict(
            ErrorCodes.CANNOT_DELETE_PROTECTED, str(error), instance
        )

    if isinstance(error, ValidationFailed | InvalidTokenFormat):
        return _field_problem(error.errors, instance)

    if isinstance(error, DuplicateTranslation):
        return _field_problem(
            {
                error.entity: f"duplicate {error.entity} translation, "
                "please update the existing one"
            },
            instance,
            ErrorCodes.DUPLICATE_TRANSLATION,
        )

    if isinstance(error, DuplicateEmail):
        return _field_problem(
            {"email": "a user with this email address already exists"},
            instance,
            ErrorCodes.DUPLICATE_EMAIL,
        )

    if isinstance(error, CategoryDoesNotExist):
        return _field_problem(
            {"category_id": "category does not exist"},
            instance,
            ErrorCodes.CATEGORY_DOES_NOT_EXIST,
        )

    if isinstance(error, InvalidRuntimeFormat):
        return ProblemDetailFactory.request_malformed(str(error), instance)

    if isinstance(error, InvalidCredentials | AuthenticationRequired):
        return ProblemDetailFactory.unauthorized(str(error), instance)

    if isinstance(error, InactiveAccount):
        return ProblemDetailFactory.forbidden(str(error), instance)

    if isinstance(error, TransientStorageError):
        return ProblemDetailFactory.service_unavailable(instance=instance)

    return ProblemDetailFactory.internal_server_error(instance=instance)


def handle_domain_error(error: DomainError, request: Request) -> JSONResponse:
    """Convert domain errors to RFC 7807 responses."""
    problem = problem_for(error, str(request.url.path))

    headers = None
    if problem.status == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    elif problem.status == 503:
        headers = {"Retry-After": "1"}

    return problem_response(problem, headers)

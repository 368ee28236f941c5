"""RFC 7807 Problem Details for HTTP APIs."""

from http import HTTPStatus
from typing import Any

from fastapi import status
from pydantic import BaseModel, Field

PROBLEM_TYPE_BASE = "https://greenlight.dev/problems"


class ErrorCodes:
    """Machine-readable codes used in problem ``errors`` entries."""

    VALIDATION_FAILED = "validation_failed"
    FIELD_REQUIRED = "field_required"
    FIELD_INVALID_VALUE = "field_invalid_value"
    DUPLICATE_TRANSLATION = "duplicate_translation"
    DUPLICATE_EMAIL = "duplicate_email"
    RESOURCE_NOT_FOUND = "resource_not_found"
    EDIT_CONFLICT = "edit_conflict"
    CATEGORY_DOES_NOT_EXIST = "category_does_not_exist"
    CANNOT_DELETE_PROTECTED = "cannot_delete_protected"
    INVALID_CREDENTIALS = "invalid_credentials"
    INACTIVE_ACCOUNT = "inactive_account"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INTERNAL_ERROR = "internal_error"


class ProblemDetail(BaseModel):
    """Problem details object as described by RFC 7807."""

    type: str = Field(
        default="about:blank", description="URI identifying the problem type"
    )
    title: str = Field(description="Short, human-readable summary")
    status: int = Field(description="HTTP status code")
    detail: str | None = Field(
        default=None, description="Explanation specific to this occurrence"
    )
    instance: str | None = Field(
        default=None, description="URI reference of the failing request"
    )
    errors: list[dict[str, str]] | None = Field(
        default=None, description="Field-level errors, if any"
    )


def field_errors_from_mapping(
    errors: dict[str, Any], code: str = ErrorCodes.FIELD_INVALID_VALUE
) -> list[dict[str, str]]:
    """Turn a ``{field: message}`` map into problem ``errors`` entries."""
    return [
        {"field": field, "code": code, "message": str(message)}
        for field, message in errors.items()
    ]


def _problem_type(code: str) -> str:
    return f"{PROBLEM_TYPE_BASE}/{code.replace('_', '-')}"


class ProblemDetailFactory:
    """Builds the problem objects the API returns."""

    @staticmethod
    def request_malformed(
        detail: str,
        instance: str | None = None,
        field_errors: list[dict[str, str]] | None = None,
    ) -> ProblemDetail:
        """Body or parameters could not be parsed into the expected shape."""
        return ProblemDetail(
            type=_problem_type("bad_request"),
            title="Bad Request",
            status=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            instance=instance,
            errors=field_errors or None,
        )

    @staticmethod
    def validation_failed(
        detail: str,
        instance: str | None = None,
        field_errors: list[dict[str, str]] | None = None,
    ) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(ErrorCodes.VALIDATION_FAILED),
            title="Validation Failed",
            status=422,
            detail=detail,
            instance=instance,
            errors=field_errors or None,
        )

    @staticmethod
    def not_found(
        detail: str = "the requested resource could not be found",
        instance: str | None = None,
    ) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(ErrorCodes.RESOURCE_NOT_FOUND),
            title="Not Found",
            status=status.HTTP_404_NOT_FOUND,
            detail=detail,
            instance=instance,
        )

    @staticmethod
    def conflict(
        code: str, detail: str, instance: str | None = None
    ) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(code),
            title="Conflict",
            status=status.HTTP_409_CONFLICT,
            detail=detail,
            instance=instance,
        )

    @staticmethod
    def unauthorized(detail: str, instance: str | None = None) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(ErrorCodes.INVALID_CREDENTIALS),
            title="Unauthorized",
            status=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            instance=instance,
        )

    @staticmethod
    def forbidden(detail: str, instance: str | None = None) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(ErrorCodes.INACTIVE_ACCOUNT),
            title="Forbidden",
            status=status.HTTP_403_FORBIDDEN,
            detail=detail,
            instance=instance,
        )

    @staticmethod
    def service_unavailable(
        detail: str = "the server is temporarily unable to handle the request",
        instance: str | None = None,
    ) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(ErrorCodes.SERVICE_UNAVAILABLE),
            title="Service Unavailable",
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            instance=instance,
        )

    @staticmethod
    def internal_server_error(
        detail: str = "the server encountered a problem and could not process your request",
        instance: str | None = None,
    ) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(ErrorCodes.INTERNAL_ERROR),
            title="Internal Server Error",
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            instance=instance,
        )

    @staticmethod
    def from_status(
        status_code: int, detail: str | None = None, instance: str | None = None
    ) -> ProblemDetail:
        """Generic problem for framework-level errors such as 404 and 405."""
        try:
            title = HTTPStatus(status_code).phrase
        except ValueError:
            title = "Error"
        return ProblemDetail(
            type="about:blank",
            title=title,
            status=status_code,
            detail=detail,
            instance=instance,
        )

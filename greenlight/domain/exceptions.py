"""Domain-specific exceptions."""

from typing import Any


class DomainError(Exception):
    """Base exception for domain errors."""

    pass


class RecordNotFound(DomainError):
    """Raised when no row matches the requested id (or the id is below 1)."""

    def __init__(self, message: str = "record not found"):
        super().__init__(message)


class EditConflict(DomainError):
    """Raised when an update carries a stale version number."""

    def __init__(self, message: str = "edit conflict"):
        super().__init__(message)


class ValidationFailed(DomainError):
    """Raised with the aggregated field errors of a validator."""

    def __init__(self, errors: dict[str, Any]):
        super().__init__("validation failed")
        self.errors = dict(errors)


class DuplicateTranslation(DomainError):
    """Raised when a translation already exists for a parent and language."""

    def __init__(self, entity: str = "translation"):
        super().__init__(f"duplicate {entity} translation")
        self.entity = entity


class DuplicateEmail(DomainError):
    """Raised when registering an email address that is already taken."""

    def __init__(self, message: str = "duplicate email"):
        super().__init__(message)


class CategoryDoesNotExist(DomainError):
    """Raised when an item references a category that is absent."""

    def __init__(self, category_id: int | None = None):
        super().__init__("category does not exist")
        self.category_id = category_id


class CannotDeleteProtected(DomainError):
    """Raised when storage refuses to delete a default or still-referenced row."""

    def __init__(self, message: str = "can't delete default category"):
        super().__init__(message)


class InvalidTokenFormat(DomainError):
    """Raised when a token plaintext does not match its scope's format."""

    def __init__(self, errors: dict[str, Any] | None = None):
        super().__init__("invalid token format")
        self.errors = dict(errors or {})


class UnrecognizedScope(DomainError):
    """Raised when a token scope is not one of the declared scopes."""

    def __init__(self, scope: str):
        super().__init__(f"unrecognized token scope: {scope!r}")
        self.scope = scope


class InvalidRuntimeFormat(DomainError):
    """Raised when a runtime is not given as '<minutes> mins'."""

    def __init__(self, message: str = "invalid runtime format"):
        super().__init__(message)


class InvalidCredentials(DomainError):
    """Raised when an email/password pair or a bearer token does not match."""

    def __init__(self, message: str = "invalid authentication credentials"):
        super().__init__(message)


class AuthenticationRequired(DomainError):
    """Raised when an anonymous request hits a protected route."""

    def __init__(self, message: str = "you must be authenticated"):
        super().__init__(message)


class InactiveAccount(DomainError):
    """Raised when a user account has not been activated yet."""

    def __init__(self, message: str = "your user account must be activated"):
        super().__init__(message)


class TransientStorageError(DomainError):
    """Raised on storage timeouts and lost connections."""

    def __init__(self, message: str = "storage temporarily unavailable"):
        super().__init__(message)


class UnsafeSortParameter(RuntimeError):
    """Raised when an unvalidated sort value reaches query construction.

    Not a DomainError: reaching this means validation was skipped.
    """

    def __init__(self, sort: str):
        super().__init__(f"unsafe sort parameter: {sort!r}")
        self.sort = sort

"""Request-scoped dependencies shared by the API routers."""

from fastapi import BackgroundTasks, Depends, Request
from sqlmodel import Session

from ..application.user_service import UserService
from ..background import BackgroundTaskRunner
from ..domain.entities import User as DomainUser
from ..domain.exceptions import AuthenticationRequired, InvalidCredentials
from ..infrastructure.database.database import get_session
from ..request_utils import read_language


def get_language(request: Request) -> str:
    """Validated language from Accept-Language.

    Raises:
        ValidationFailed: if the language is not supported
    """
    language, v = read_language(request)
    v.raise_if_invalid()
    return language


def get_background_runner(background_tasks: BackgroundTasks) -> BackgroundTaskRunner:
    return BackgroundTaskRunner(background_tasks)


def get_user_service(
    session: Session = Depends(get_session),
    runner: BackgroundTaskRunner = Depends(get_background_runner),
) -> UserService:
    return UserService(session, runner=runner)


def require_authenticated_user(
    request: Request, users: UserService = Depends(get_user_service)
) -> DomainUser:
    """Resolve ``Authorization: Bearer <token>`` to a user."""
    header = request.headers.get("Authorization")
    if not header:
        raise AuthenticationRequired()

    scheme, _, token = header.partition(" ")
    if scheme != "Bearer" or not token:
        raise InvalidCredentials("invalid or missing authentication token")

    return users.authenticate(token.strip())


def require_activated_user(
    user: DomainUser = Depends(require_authenticated_user),
) -> DomainUser:
    return UserService.require_activated(user)

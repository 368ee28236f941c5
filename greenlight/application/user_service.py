"""Application layer - registration, activation and authentication."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Final, Protocol, cast

from sqlmodel import Session

from ..background import BackgroundTaskRunner, run_guarded
from ..config import settings
from ..domain.constants import SCOPE_ACTIVATION, SCOPE_AUTHENTICATION
from ..domain.entities import User as DomainUser
from ..domain.entities import validate_email, validate_password_plaintext
from ..domain.exceptions import (
    InactiveAccount,
    InvalidCredentials,
    InvalidTokenFormat,
    RecordNotFound,
    ValidationFailed,
)
from ..domain.tokens import Token, validate_token_plaintext
from ..domain.validator import Validator
from ..infrastructure.database.repositories import TokenRepository, UserRepository
from ..logging_config import get_logger
from ..metrics import record_background_task
from ..security import get_password_hash, verify_password

logger: Final = get_logger(__name__)


@dataclass(frozen=True)
class ActivationNotice:
    """Everything the welcome message needs, copied out of the request."""

    recipient: str
    name: str
    user_id: int
    activation_token: str


class Notifier(Protocol):
    def send(self, notice: ActivationNotice) -> None: ...


class LogNotifier:
    """Writes the welcome message to the log instead of sending it."""

    def send(self, notice: ActivationNotice) -> None:
        logger.info(
            "Sending activation notice",
            recipient=notice.recipient,
            user_id=notice.user_id,
        )


class UserService:
    """Application service for User operations."""

    def __init__(
        self,
        session: Session,
        runner: BackgroundTaskRunner | None = None,
        notifier: Notifier | None = None,
    ):
        self.user_repo = UserRepository(session)
        self.token_repo = TokenRepository(session)
        self.runner = runner
        self.notifier = notifier or LogNotifier()

    def register_user(self, name: str, email: str, password: str) -> DomainUser:
        """Create an inactive user and send the activation token.

        Raises:
            ValidationFailed: if name, email or password are invalid
            DuplicateEmail: if the email address is taken
        """
        v = Validator()
        validate_password_plaintext(v, password)
        user = DomainUser(
            id=None,
            name=name,
            email=email,
            password_hash=get_password_hash(password) if password else "",
        )
        user.validate(v)
        v.raise_if_invalid()

        # The user row is only flushed; the token commit writes both or neither
        created = self.user_repo.insert(user, commit=False)
        user_id = cast(int, created.id)
        token = self.token_repo.new(
            user_id,
            timedelta(hours=settings.activation_token_ttl_hours),
            SCOPE_ACTIVATION,
        )
        logger.info("User registered", user_id=user_id)

        notice = ActivationNotice(
            recipient=created.email,
            name=created.name,
            user_id=user_id,
            activation_token=token.plaintext,
        )
        if self.runner is None:
            run_guarded(self.notifier.send, notice)
        else:
            self.runner.run(self.notifier.send, notice)
            record_background_task("activation_notice")

        return created

    def activate_user(self, token_plaintext: str) -> DomainUser:
        """Activate the owner of a live activation token.

        Raises:
            InvalidTokenFormat: if the token is malformed
            ValidationFailed: if no live activation token matches
            EditConflict: if the user changed concurrently
        """
        v = Validator()
        validate_token_plaintext(v, token_plaintext, SCOPE_ACTIVATION)
        if not v.valid():
            raise InvalidTokenFormat(v.errors)

        try:
            user = self.user_repo.get_for_token(SCOPE_ACTIVATION, token_plaintext)
        except RecordNotFound:
            raise ValidationFailed(
                {"token": "invalid or expired activation token"}
            ) from None

        user.activated = True
        user = self.user_repo.update(user)
        self.token_repo.delete_all_for_user(SCOPE_ACTIVATION, cast(int, user.id))
        logger.info("User activated", user_id=user.id)
        return user

    def create_authentication_token(self, email: str, password: str) -> Token:
        """Exchange credentials for a new token; earlier ones stop working.

        Raises:
            ValidationFailed: if email or password are malformed
            InvalidCredentials: if they do not match a user
        """
        v = Validator()
        validate_email(v, email)
        validate_password_plaintext(v, password)
        v.raise_if_invalid()

        try:
            user = self.user_repo.get_by_email(email)
        except RecordNotFound:
            raise InvalidCredentials() from None

        if not verify_password(password, user.password_hash):
            logger.info("Authentication failed - wrong password", user_id=user.id)
            raise InvalidCredentials()

        user_id = cast(int, user.id)
        self.token_repo.delete_all_for_user(SCOPE_AUTHENTICATION, user_id)
        return self.token_repo.new(
            user_id,
            timedelta(hours=settings.authentication_token_ttl_hours),
            SCOPE_AUTHENTICATION,
        )

    def authenticate(self, token_plaintext: str) -> DomainUser:
        """Resolve a bearer token to its user.

        Raises:
            InvalidCredentials: if the token is malformed, unknown or expired
        """
        v = Validator()
        validate_token_plaintext(v, token_plaintext, SCOPE_AUTHENTICATION)
        if not v.valid():
            raise InvalidCredentials("invalid or missing authentication token")

        try:
            return self.user_repo.get_for_token(SCOPE_AUTHENTICATION, token_plaintext)
        except RecordNotFound:
            raise InvalidCredentials(
                "invalid or missing authentication token"
            ) from None

    @staticmethod
    def require_activated(user: DomainUser) -> DomainUser:
        if not user.activated:
            raise InactiveAccount()
        return user

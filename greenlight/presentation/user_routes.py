from datetime import datetime
from typing import Final, cast

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ..application.user_service import UserService
from ..domain.entities import User as DomainUser
from .dependencies import get_user_service

user_router: Final = APIRouter(
    prefix="/v1",
    tags=["users"],
    responses={
        401: {"description": "Unauthorized - Credentials do not match"},
        409: {"description": "Conflict - User changed concurrently"},
        422: {"description": "Validation Error - Invalid fields or token"},
    },
)


# Request Models
class UserRegistration(BaseModel):
    name: str = Field(default="", examples=["Alice Smith"])
    email: str = Field(default="", examples=["alice@example.com"])
    password: str = Field(default="", examples=["pa55word"])


class UserActivation(BaseModel):
    token: str = Field(default="", description="Plaintext activation token")


class Credentials(BaseModel):
    email: str = ""
    password: str = ""


# Response Models
class UserResponse(BaseModel):
    """A user as returned by the API; never includes the password hash."""

    id: int
    name: str
    email: str
    activated: bool
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, user: DomainUser) -> "UserResponse":
        return cls(
            id=cast(int, user.id),
            name=user.name,
            email=user.email,
            activated=user.activated,
            created_at=user.created_at,
        )


class UserEnvelope(BaseModel):
    user: UserResponse


class AuthenticationToken(BaseModel):
    token: str
    expiry: datetime


class AuthenticationTokenEnvelope(BaseModel):
    authentication_token: AuthenticationToken


@user_router.post(
    "/users",
    response_model=UserEnvelope,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Register a user",
)
def api_register_user(
    payload: UserRegistration, users: UserService = Depends(get_user_service)
) -> UserEnvelope:
    """Create an inactive user; the activation token is sent in the background."""
    user = users.register_user(
        name=payload.name, email=payload.email, password=payload.password
    )
    return UserEnvelope(user=UserResponse.from_domain(user))


@user_router.put(
    "/users/activated", response_model=UserEnvelope, summary="Activate a user"
)
def api_activate_user(
    payload: UserActivation, users: UserService = Depends(get_user_service)
) -> UserEnvelope:
    user = users.activate_user(payload.token)
    return UserEnvelope(user=UserResponse.from_domain(user))


@user_router.post(
    "/tokens/authentication",
    response_model=AuthenticationTokenEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create an authentication token",
)
def api_create_authentication_token(
    payload: Credentials, users: UserService = Depends(get_user_service)
) -> AuthenticationTokenEnvelope:
    """Issue a bearer token; tokens issued earlier to the same user stop working."""
    token = users.create_authentication_token(payload.email, payload.password)
    return AuthenticationTokenEnvelope(
        authentication_token=AuthenticationToken(
            token=token.plaintext, expiry=token.expiry
        )
    )

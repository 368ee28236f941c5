"""Password hashing helpers."""

from typing import Final

from passlib.context import CryptContext

# pbkdf2_sha256 is implemented by passlib itself, no native backend needed
pwd_context: Final = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def get_password_hash(password: str) -> str:
    """Return a salted hash of the password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Constant-time verify of a plaintext password against a stored hash."""
    return pwd_context.verify(plain_password, hashed_password)

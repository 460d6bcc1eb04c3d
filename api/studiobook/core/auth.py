"""Password hashing and JWT tokens for staff, admins and members."""

from datetime import UTC, datetime, timedelta

from jose import jwt
from passlib.context import CryptContext

from studiobook.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _encode(user_id: int, token_type: str, lifetime: timedelta, role: str | None = None) -> str:
    payload = {"sub": str(user_id), "type": token_type, "exp": datetime.now(UTC) + lifetime}
    if role:
        payload["role"] = role
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: int, role: str | None = None) -> str:
    """Short-lived bearer token. The role claim is informational; routes re-check the DB row."""
    return _encode(user_id, ACCESS, timedelta(minutes=settings.access_token_expire_minutes), role)


def create_refresh_token(user_id: int) -> str:
    return _encode(user_id, REFRESH, timedelta(days=settings.refresh_token_expire_days))


def decode_token(token: str, expected_type: str = ACCESS) -> int:
    """Return the user id carried by a token of the expected type.

    Raises JWTError for bad signatures or expiry, and ValueError/KeyError for
    a token of the wrong type or without a usable subject.
    """
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    if payload.get("type") != expected_type:
        raise ValueError(f"Expected a {expected_type} token")
    return int(payload["sub"])

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.core.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(user_id: uuid.UUID | str, expires_in: timedelta | None = None) -> str:
    """Mint a token in the auth service's format; used by tooling and tests."""
    expire = datetime.now(timezone.utc) + (expires_in or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS))
    payload = {"sub": str(user_id), "exp": expire, "type": ACCESS_TOKEN_TYPE}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def user_id_from_token(token: str) -> uuid.UUID | None:
    """Subject of a valid access token; None for expired, forged or non-access tokens."""
    payload = decode_token(token)
    if payload is None or payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    try:
        return uuid.UUID(str(payload.get("sub")))
    except ValueError:
        return None

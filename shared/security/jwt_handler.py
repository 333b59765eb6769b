"""
Shopper access tokens.

A token's `sub` is the storefront user id. Checkout never requires one: a
missing or bad token makes the request a guest checkout, and only the order
history and order linking routes insist on it.
"""
import warnings
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from shared.config import settings

SECRET_KEY = settings.JWT_SECRET_KEY
if not SECRET_KEY:
    warnings.warn(
        "JWT_SECRET_KEY is not set. Shopper tokens are signed with an insecure default.",
        stacklevel=2,
    )
    SECRET_KEY = "insecure-storefront-secret-change-me"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> Optional[dict]:
    """Payload of a valid token, None for a bad or expired one."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None


def token_subject(token: Optional[str]) -> Optional[str]:
    """The user id a token was issued to, or None when there is no usable token."""
    if not token:
        return None
    payload = verify_access_token(token)
    if not payload or payload.get("sub") is None:
        return None
    return str(payload["sub"])


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return None

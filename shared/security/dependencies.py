import secrets
import warnings
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, OAuth2PasswordBearer

from shared.config import settings

from .jwt_handler import token_subject

# Tokens are optional at the scheme level; guest checkout sends none
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)
api_key_header = APIKeyHeader(name="X-Internal-API-Key", auto_error=False)

INTERNAL_API_KEY = settings.INTERNAL_API_KEY
if not INTERNAL_API_KEY:
    warnings.warn(
        "INTERNAL_API_KEY is not set. Full order reads use an insecure default key.",
        stacklevel=2,
    )
    INTERNAL_API_KEY = "insecure-default-change-me"


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> str:
    """Signed-in shopper or 401."""
    user_id = token_subject(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    request.state.user_id = user_id
    return user_id


async def get_optional_user(request: Request, token: str = Depends(oauth2_scheme)) -> Optional[str]:
    """Signed-in shopper, or None for a guest checkout."""
    user_id = token_subject(token)
    if user_id is not None:
        request.state.user_id = user_id
    return user_id


def verify_api_key(provided_key: Optional[str]) -> bool:
    if not provided_key:
        return False
    return secrets.compare_digest(str(provided_key), str(INTERNAL_API_KEY))


async def verify_internal_api_key(api_key: str = Depends(api_key_header)) -> bool:
    if not verify_api_key(api_key):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or missing X-Internal-API-Key header"
        )
    return True

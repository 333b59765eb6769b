from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from .jwt_handler import bearer_token, token_subject


def user_id_or_ip(request: Request) -> str:
    """
    Checkout is limited per signed-in shopper, guests per client address, so
    one client cannot hammer the card processor through the payment route.
    """
    user_id = token_subject(bearer_token(request.headers.get("Authorization")))
    if user_id is not None:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=user_id_or_ip)

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from core.config import settings
from core.exceptions import ConfigurationError
from services.signing_service import TokenKind, TokenVerificationError
from utils.deps import get_signing_service


def get_user_id(request: Request):
    """
    Rate-limit key for a request.

    Authenticated callers are limited per user, so one user cannot dodge the
    limit by switching networks and users behind one NAT do not share a
    bucket. Anything else (no header, bad or expired token, refresh token
    sent as bearer) is limited per client address.

    Args:
        request: Incoming request

    Returns:
        "user:<id>" for a valid access token, otherwise the remote address
    """
    header = request.headers.get("Authorization")
    if header:
        token = header.split(" ", 1)[-1].strip()
        try:
            payload = get_signing_service().verify(token, TokenKind.ACCESS)
            return f"user:{payload.subject_id}"
        except (TokenVerificationError, ConfigurationError):
            # Fall through; the route itself reports the auth failure
            pass

    return get_remote_address(request)

limiter = Limiter(
    key_func=get_user_id,
    default_limits=["200/hour"],
    enabled=settings.ENV != "testing"
)

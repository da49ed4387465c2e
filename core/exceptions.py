"""
Error taxonomy for the authentication core.

Services raise these; the HTTP layer (see main.py) turns them into
JSON responses using `status_code` and `detail`.
"""

from starlette import status


class AuthError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "Authentication error"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ConfigurationError(AuthError):
    """Signing secret (or another required setting) is missing."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Server misconfigured"


class InvalidCredentials(AuthError):
    # Same message for unknown user and wrong password
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid credentials"


class InvalidToken(AuthError):
    """Token is malformed, expired, badly signed or of the wrong type."""
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Invalid token"


class NotFound(InvalidToken):
    """Token verified but its subject no longer exists."""
    status_code = status.HTTP_404_NOT_FOUND
    detail = "User not found"


class InvalidRefreshToken(AuthError):
    """
    Verified refresh token that is not in its owner's active set.
    Raised only after every refresh token of that user has been revoked.
    """
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Refresh token reuse detected. Please sign in again."


class Unauthorized(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Not authenticated"


class TokenExpired(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Token expired"


class Forbidden(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Could not validate credentials"


class UserAlreadyExists(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Email already in use"

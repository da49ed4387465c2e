import secrets
from dataclasses import dataclass
from datetime import datetime, timezone, timedelta
from enum import Enum
from jose import jwt, JWTError
from jose.exceptions import ExpiredSignatureError
from core.config import Settings
from core.exceptions import ConfigurationError


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenVerificationError(Exception):
    """Token could not be verified (signature, format, claims or type)."""


class TokenExpiredError(TokenVerificationError):
    """Token was correctly signed but is past its `exp`."""


@dataclass(frozen=True)
class TokenPayload:
    subject_id: int
    nonce: str
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime


class SigningService:
    """
    Signs and verifies the JWT envelopes used for access and refresh tokens.

    Both kinds share one secret; the `type` claim is part of the signed
    payload and `verify` rejects a token of the wrong kind.
    """

    def __init__(
        self,
        secret: str | None,
        algorithm: str = "HS256",
        access_expires: timedelta = timedelta(minutes=15),
        refresh_expires: timedelta = timedelta(days=7),
    ):
        """
        Raises:
            ConfigurationError: If `secret` is empty or missing
        """
        if not secret:
            raise ConfigurationError("Token signing secret is not configured")

        self._secret = secret
        self.algorithm = algorithm
        self.expires = {
            TokenKind.ACCESS: access_expires,
            TokenKind.REFRESH: refresh_expires,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "SigningService":
        return cls(
            secret=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            access_expires=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_expires=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        )

    @staticmethod
    def new_nonce() -> str:
        return secrets.token_urlsafe(16)

    def sign(self, subject_id: int, kind: TokenKind, nonce: str) -> tuple[str, datetime]:
        """
        Signs a token for `subject_id`.

        Returns:
            Tuple of (token, expires_at)
        """
        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + self.expires[kind]

        payload = {
            "sub": str(subject_id),
            "nonce": nonce,
            "type": kind.value,
            "iat": issued_at,
            "exp": expires_at,
        }

        token = jwt.encode(payload, self._secret, algorithm=self.algorithm)
        return token, expires_at

    def verify(self, token: str, kind: TokenKind, verify_exp: bool = True) -> TokenPayload:
        """
        Decodes `token` and checks it is a `kind` token.

        Args:
            token: Encoded JWT string
            kind: Expected token type; a token of the other kind is rejected
            verify_exp: False skips the expiry check (logout of expired tokens)

        Returns:
            TokenPayload with the subject id and nonce

        Raises:
            TokenExpiredError: Signature is fine but the token has expired
            TokenVerificationError: Any other problem
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"verify_exp": verify_exp},
            )
        except ExpiredSignatureError as exc:
            raise TokenExpiredError("Token expired") from exc
        except JWTError as exc:
            raise TokenVerificationError("Invalid token") from exc

        if payload.get("type") != kind.value:
            raise TokenVerificationError(f"Invalid token type. {kind.value.capitalize()} token required.")

        nonce = payload.get("nonce")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if not nonce or issued_at is None or expires_at is None:
            raise TokenVerificationError("Invalid token payload")

        try:
            subject_id = int(payload.get("sub"))
        except (TypeError, ValueError) as exc:
            raise TokenVerificationError("Invalid token subject") from exc

        return TokenPayload(
            subject_id=subject_id,
            nonce=nonce,
            kind=kind,
            issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
        )

from dataclasses import dataclass
from core.exceptions import (
    InvalidCredentials, InvalidToken, NotFound, InvalidRefreshToken,
    Unauthorized, TokenExpired, Forbidden
)
from services.signing_service import (
    SigningService, TokenKind, TokenVerificationError, TokenExpiredError
)
from services.user_store import UserStore
from utils.hashing import verify_password, verify_password_against_dummy
from utils.logger import get_logger, sanitize_log_data

logger = get_logger(__name__)

AUTH_SCHEMES = ("bearer", "jwt")


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    refresh_token: str
    user_id: int
    token_type: str = "bearer"


class TokenService:
    """
    Issues, validates, rotates and revokes access/refresh token pairs.

    Refresh tokens are tracked in the owner's active set (see UserStore). A
    refresh token leaves that set exactly once: on logout, on rotation, or
    when presenting an unknown token wipes the whole set (reuse detection).
    Access tokens are stateless and stay valid until they expire.
    """

    def __init__(self, store: UserStore, signer: SigningService):
        self.store = store
        self.signer = signer

    def _sign_pair(self, user_id: int):
        # Both envelopes share one nonce so they can be correlated in logs
        nonce = self.signer.new_nonce()
        access_token, _ = self.signer.sign(user_id, TokenKind.ACCESS, nonce)
        refresh_token, refresh_expires_at = self.signer.sign(user_id, TokenKind.REFRESH, nonce)
        return TokenPair(access_token=access_token, refresh_token=refresh_token), refresh_expires_at

    def issue_token_pair(self, user_id: int) -> TokenPair:
        """
        Creates a new access + refresh token pair for `user_id`.
        The refresh token is stored in the user's active set before returning.
        """
        pair, refresh_expires_at = self._sign_pair(user_id)

        self.store.prune_expired_refresh_tokens(user_id)
        self.store.add_refresh_token(user_id, pair.refresh_token, refresh_expires_at)

        logger.debug("Token pair issued", extra={"user_id": user_id})
        return pair

    def login(self, identifier: str, password: str) -> LoginResult:
        """
        Authenticates by email or username and issues a fresh token pair.

        Raises:
            InvalidCredentials: Unknown user, inactive account or wrong password
        """
        user = self.store.find_by_credential(identifier)

        if user is None:
            # Unknown accounts pay the same bcrypt cost as a wrong password
            verify_password_against_dummy(password)

        if not user or not user.is_active or not verify_password(password, user.hashed_password):
            logger.warning(
                "Login failed - invalid credentials",
                extra={"identifier": identifier, "user_id": user.id if user else None}
            )
            raise InvalidCredentials()

        pair = self.issue_token_pair(user.id)

        logger.info("User logged in", extra={"user_id": user.id})
        return LoginResult(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user_id=user.id
        )

    def refresh(self, refresh_token: str) -> TokenPair:
        """
        Exchanges a refresh token for a new pair (token rotation).

        Presenting a verified refresh token that is not in its owner's active
        set (already rotated, logged out, or wiped) revokes every refresh token
        of that user before failing.

        Raises:
            InvalidToken: Bad signature, expired, not a refresh token, or inactive account
            NotFound: The token's user no longer exists
            InvalidRefreshToken: Token reuse detected
        """
        try:
            payload = self.signer.verify(refresh_token, TokenKind.REFRESH)
        except TokenVerificationError as exc:
            logger.info("Refresh rejected - token did not verify", extra={"reason": str(exc)})
            raise InvalidToken(str(exc)) from exc

        user = self.store.find_by_id(payload.subject_id)
        if not user:
            raise NotFound()

        if not user.is_active:
            logger.warning("Refresh rejected - inactive account", extra={"user_id": user.id})
            raise InvalidToken("Account is inactive")

        if not self.store.has_refresh_token(user.id, refresh_token):
            self._revoke_family(user.id, refresh_token)
            raise InvalidRefreshToken()

        new_pair, refresh_expires_at = self._sign_pair(user.id)

        # Another request may have consumed the token since the membership check
        if not self.store.rotate_refresh_token(user.id, refresh_token, new_pair.refresh_token, refresh_expires_at):
            self._revoke_family(user.id, refresh_token)
            raise InvalidRefreshToken()

        logger.info("Refresh token rotated", extra={"user_id": user.id})
        return new_pair

    def _revoke_family(self, user_id: int, presented_token: str) -> None:
        revoked = self.store.clear_refresh_tokens(user_id)
        logger.warning(
            "Refresh token reuse detected - all refresh tokens revoked",
            extra={
                "user_id": user_id,
                "revoked_count": revoked,
                **sanitize_log_data({"refresh_token": presented_token})
            }
        )

    def logout(self, refresh_token: str) -> None:
        """
        Removes `refresh_token` from its owner's active set.

        Tokens that do not verify, or are not in any set, are ignored: logout
        is idempotent. Expired tokens are still removed.
        """
        try:
            payload = self.signer.verify(refresh_token, TokenKind.REFRESH, verify_exp=False)
        except TokenVerificationError as exc:
            logger.info("Logout with unverifiable token ignored", extra={"reason": str(exc)})
            return

        removed = self.store.remove_refresh_token(payload.subject_id, refresh_token)
        logger.info("User logged out", extra={"user_id": payload.subject_id, "token_removed": removed})

    def revoke_all(self, user_id: int) -> int:
        """Revokes every refresh token of a user (logout from all devices)."""
        revoked = self.store.clear_refresh_tokens(user_id)
        logger.info("All refresh tokens revoked", extra={"user_id": user_id, "revoked_count": revoked})
        return revoked

    def authenticate(self, header_value: str | None) -> int:
        """
        Validates an `Authorization` header value and returns the user id.

        Accepts `Bearer <token>` and `JWT <token>`. Does not look at the
        refresh-token sets.

        Raises:
            Unauthorized: No credentials supplied
            TokenExpired: Access token past its expiry
            Forbidden: Anything else wrong with the credentials
        """
        if not header_value or not header_value.strip():
            raise Unauthorized()

        parts = header_value.split()
        if len(parts) == 1 and parts[0].lower() in AUTH_SCHEMES:
            raise Unauthorized()
        if len(parts) != 2:
            raise Forbidden()

        scheme, token = parts
        if scheme.lower() not in AUTH_SCHEMES:
            raise Forbidden()

        try:
            payload = self.signer.verify(token, TokenKind.ACCESS)
        except TokenExpiredError as exc:
            raise TokenExpired() from exc
        except TokenVerificationError as exc:
            raise Forbidden() from exc

        return payload.subject_id

import hashlib
from datetime import datetime, timezone
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from core.exceptions import UserAlreadyExists
from models.users import User
from models.refresh_tokens import RefreshToken


def hash_token(token: str) -> str:
    """
    SHA-256 hex digest of the full token string.
    This is what is stored and compared, never the token itself.
    """
    return hashlib.sha256(token.encode()).hexdigest()


class UserStore:
    """
    Persistence for users and their active refresh-token sets.

    Every method that changes a refresh-token set commits before returning.
    `rotate_refresh_token` is the only read-modify-write on a set and is done
    as a single conditional DELETE so concurrent callers (threads or separate
    server processes) cannot both consume the same token.
    """

    def __init__(self, db: Session):
        self.db = db

    # Users

    def create(self, username: str, email: str, hashed_password: str) -> User:
        """
        Inserts a new user. Email is stored lower-cased.

        Args:
            username: Public handle, unique
            email: Login email, unique (case-insensitive)
            hashed_password: bcrypt hash, see utils.hashing

        Returns:
            The persisted user with its id populated

        Raises:
            UserAlreadyExists: The unique index on email or username rejected the row
                (e.g. two registrations racing past the duplicate check)
        """
        user = User(
            username=username.strip(),
            email=email.lower().strip(),
            hashed_password=hashed_password,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise UserAlreadyExists("Email or username already in use") from exc

        self.db.refresh(user)
        return user

    def find_by_id(self, user_id: int) -> User | None:
        return self.db.query(User).filter(User.id == user_id).one_or_none()

    def find_by_credential(self, identifier: str) -> User | None:
        """
        Looks a user up by login identifier.

        Args:
            identifier: Email (matched case-insensitively) or exact username

        Returns:
            The user, or None when nothing matches
        """
        identifier = identifier.strip()
        return self.db.query(User).filter(
            or_(User.email == identifier.lower(), User.username == identifier)
        ).first()

    def find_by_email_or_username(self, email: str, username: str) -> User | None:
        """Returns any user already holding `email` or `username` (registration check)."""
        return self.db.query(User).filter(
            or_(User.email == email.lower().strip(), User.username == username.strip())
        ).first()

    def save(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    # Refresh-token set

    def add_refresh_token(self, user_id: int, token: str, expires_at: datetime) -> None:
        """
        Adds `token` to the user's active set.

        Args:
            user_id: Owner of the token
            token: The signed refresh token string
            expires_at: Same instant as the token's `exp` claim
        """
        self.db.add(RefreshToken(
            user_id=user_id,
            token_hash=hash_token(token),
            expires_at=expires_at
        ))
        self.db.commit()

    def has_refresh_token(self, user_id: int, token: str) -> bool:
        """True if `token` is currently in `user_id`'s active set."""
        return self.db.query(RefreshToken.id).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.token_hash == hash_token(token)
        ).first() is not None

    def rotate_refresh_token(self, user_id: int, old_token: str, new_token: str, new_expires_at: datetime) -> bool:
        """
        Removes `old_token` from the user's set and adds `new_token`, in one
        transaction, but only if `old_token` was still there.

        How it works:
        1. DELETE the old row filtered by owner and hash
        2. If the database reports anything other than one deleted row,
           roll back: someone else consumed (or wiped) the token first
        3. Otherwise insert the replacement and commit both together

        The database serialises the DELETE, so of several concurrent callers
        presenting the same token exactly one sees a deleted row.

        Returns:
            True if the rotation happened, False if `old_token` was already gone
        """
        removed = self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.token_hash == hash_token(old_token)
        ).delete(synchronize_session=False)

        if removed != 1:
            self.db.rollback()
            return False

        self.db.add(RefreshToken(
            user_id=user_id,
            token_hash=hash_token(new_token),
            expires_at=new_expires_at
        ))
        self.db.commit()
        return True

    def remove_refresh_token(self, user_id: int, token: str) -> bool:
        """
        Drops a single token from the user's set (logout).

        Returns:
            True if the token was in the set
        """
        removed = self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.token_hash == hash_token(token)
        ).delete(synchronize_session=False)
        self.db.commit()
        return removed > 0

    def clear_refresh_tokens(self, user_id: int) -> int:
        """
        Empties the user's set (reuse detection, logout everywhere).

        Returns:
            Number of tokens revoked
        """
        removed = self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.commit()
        return removed

    def prune_expired_refresh_tokens(self, user_id: int) -> int:
        """Deletes the user's tokens whose expiry has passed. Returns how many."""
        removed = self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.expires_at < datetime.now(timezone.utc)
        ).delete(synchronize_session=False)
        self.db.commit()
        return removed

    def count_refresh_tokens(self, user_id: int) -> int:
        return self.db.query(RefreshToken).filter(RefreshToken.user_id == user_id).count()

from core.exceptions import UserAlreadyExists
from models.users import User
from services.user_store import UserStore
from utils.hashing import get_password_hash
from utils.logger import get_logger

logger = get_logger(__name__)


class AuthService:

    @staticmethod
    def create_user(store: UserStore, username: str, email: str, password: str) -> User:
        """
        Registers a new user.

        Args:
            store: User store bound to the request session
            username: Public handle
            email: Login email, compared case-insensitively
            password: Plain password, hashed before storage

        Returns:
            The created user

        Raises:
            UserAlreadyExists: Email or username is taken
                (checked up front, and again by the unique index on insert)
        """
        existing_user = store.find_by_email_or_username(email, username)
        if existing_user:
            field = "Email" if existing_user.email == email.lower().strip() else "Username"
            logger.warning(
                "Registration attempt with existing account",
                extra={"email": email, "username": username}
            )
            raise UserAlreadyExists(f"{field} already in use")

        user = store.create(
            username=username,
            email=email,
            hashed_password=get_password_hash(password)
        )

        logger.info("User registered", extra={"user_id": user.id})
        return user

    @staticmethod
    def get_active_user_by_id(store: UserStore, user_id: int) -> User | None:
        """Returns the user only if it exists and is active, otherwise None."""
        user = store.find_by_id(user_id)
        if user is None or not user.is_active:
            return None
        return user

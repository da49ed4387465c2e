from models.users import User
from models.refresh_tokens import RefreshToken

__all__ = ["User", "RefreshToken"]

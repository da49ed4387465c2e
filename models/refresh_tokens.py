from core.database import Base
from sqlalchemy import Column, DateTime, String, Integer, ForeignKey
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin


class RefreshToken(Base, CreatedAtMixin):
    """
    One currently valid refresh token of a user.

    The rows belonging to a user form that user's active refresh-token set:
    a token is valid for refresh only while its row exists. Rotation, logout
    and reuse detection all delete rows, nothing is ever flagged in place.

    Only the SHA-256 of the full token string is stored. The unique index on
    `token_hash` guarantees that a token belongs to at most one user.
    """
    __tablename__ = "refresh_tokens"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    #relationships
    user = relationship("User", back_populates="refresh_tokens")

    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)

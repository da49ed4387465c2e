from core.database import Base
from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin, UpdatedAtMixin


class User(Base, CreatedAtMixin, UpdatedAtMixin):
    __tablename__ = "users"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #relationships
    # Active refresh tokens; one row per token, see RefreshToken
    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    profile_picture = Column(String, default="", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, Text


class User(BaseModel, Base):
    """
    Account record. refresh_token holds the single refresh token that is
    currently honoured for this account; None means logged out.
    """
    __tablename__ = "users"

    SENSITIVE_FIELDS = ("password_hash", "refresh_token")

    username = Column(String(30), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    avatar = Column(String(1024), nullable=True)
    cover_image = Column(String(1024), nullable=True)
    refresh_token = Column(Text, nullable=True)

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def __repr__(self):
        return f"<User {self.username}>"


@dataclass(frozen=True)
class AccountView:
    """The authenticated account as request handlers see it: no hash, no refresh token."""
    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar: Optional[str] = None
    cover_image: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "AccountView":
        return cls(
            id=user.id,
            username=getattr(user, "username", None),
            email=getattr(user, "email", None),
            full_name=getattr(user, "full_name", None),
            avatar=getattr(user, "avatar", None),
            cover_image=getattr(user, "cover_image", None),
            created_at=getattr(user, "created_at", None),
            updated_at=getattr(user, "updated_at", None),
        )

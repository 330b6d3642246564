from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from saysense.db.base import Base, TimestampMixin, UUIDMixin, enum_column
from saysense.models.enums import UserRole


class User(Base, UUIDMixin, TimestampMixin):
    __tablename__ = 'users'

    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255))
    name = Column(String(255), nullable=False)
    role = enum_column(UserRole, nullable=False, default=UserRole.USER)
    is_guest = Column(Boolean, nullable=False, default=False)
    preferred_lang = Column(String(16), nullable=False, default='en')
    avatar_url = Column(String(1024))
    deleted_at = Column(DateTime(timezone=True))

    sessions = relationship("PresentationSession", back_populates="user")

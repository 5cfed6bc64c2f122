"""
User database model.

Senders, recipients, couriers and admins all live in this table.
Recipients that have never registered exist as shell accounts.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from sendit.app.db.session import Base
from sendit.app.models.enums import UserRole


class User(Base):
    """
    User model.

    Credentials are owned by the identity service, so a user row carries
    profile, role and notification preference only.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)

    role = Column(Enum(UserRole), default=UserRole.CUSTOMER, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Shell accounts are created for unknown recipients and have not registered yet
    is_registered = Column(Boolean, default=True, nullable=False)

    # Notification preference
    email_notifications = Column(Boolean, default=True, nullable=False)

    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"

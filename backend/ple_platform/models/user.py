"""
PLE Platform - User Model
=========================
Member accounts with role-based access.
"""

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String, Uuid, func

from ple_platform.core.database import Base


class UserRole(str, enum.Enum):
    member = "member"
    editor = "editor"
    admin = "admin"


def enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Identity
    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # Role
    role = Column(
        Enum(UserRole, name="user_role", native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=UserRole.member,
    )

    # Status
    is_active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"

# mla_office/users/models.py

"""
Minimal user and module-permission tables.

Only what the export routes need to identify the caller and check module
entitlements; account management lives elsewhere.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mla_office.core.db import Base


class User(Base):
    """Application user"""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class RoleModulePermission(Base):
    """Module entitlement granted to every user of a role"""
    __tablename__ = "role_module_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "module_key", name="uq_role_module"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    module_key: Mapped[str] = mapped_column(String(100), nullable=False)
    has_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class UserModulePermission(Base):
    """Per-user override of a module entitlement"""
    __tablename__ = "user_module_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "module_key", name="uq_user_module"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", name="fk_user_module_permissions_user_id"),
        nullable=False, index=True,
    )
    module_key: Mapped[str] = mapped_column(String(100), nullable=False)
    has_access: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

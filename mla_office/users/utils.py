# mla_office/users/utils.py

"""
Identity and module-access dependencies.

Sessions are terminated by the authentication gateway in front of this
service, which forwards the authenticated user id in the X-User-Id header.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from mla_office.core.db import get_db
from mla_office.users.models import RoleModulePermission, User, UserModulePermission
from mla_office.utils.logger import get_logger

logger = get_logger(__name__)


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the calling user or fail with 401."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )

    user = db.get(User, x_user_id)
    if not user or not user.is_active:
        logger.warning("Rejected request for unknown or inactive user", user_id=x_user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )
    return user


def has_module_access(db: Session, user_id: str, module_key: str) -> bool:
    """
    Check whether a user may use a module.

    A user-level permission row wins over the role-level one; without either
    the answer is no.
    """
    user = db.get(User, user_id)
    if not user:
        return False

    override = db.execute(
        select(UserModulePermission.has_access).where(
            UserModulePermission.user_id == user_id,
            UserModulePermission.module_key == module_key,
        )
    ).scalar_one_or_none()
    if override is not None:
        return override

    if user.role_id is None:
        return False

    granted = db.execute(
        select(RoleModulePermission.has_access).where(
            RoleModulePermission.role_id == user.role_id,
            RoleModulePermission.module_key == module_key,
        )
    ).scalar_one_or_none()
    return bool(granted)


def require_module_access(module_key: str):
    """Build a dependency that returns the current user if entitled, else 403."""

    def _dependency(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> User:
        if not has_module_access(db, current_user.id, module_key):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Access denied"
            )
        return current_user

    return _dependency

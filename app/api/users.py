import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.database import get_db
from app.dependencies import require_admin
from app.models.user import User
from app.repositories.users import UserRepository
from app.schemas import RoleUpdate, UserOut
from app.services.pagination import normalize_paging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blog/admin/users", tags=["admin"])


def _target(users: UserRepository, user_id: int, admin: User, action: str) -> User:
    # An admin cannot lock themselves out
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail=f"You cannot {action} your own account")
    user = users.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("", response_model=List[UserOut])
def list_users(
    page: int = 1,
    limit: Optional[int] = None,
    _admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Every user, newest first - admin only"""
    page, limit = normalize_paging(page, limit, settings)
    try:
        return UserRepository(db).list_all(skip=(page - 1) * limit, limit=limit)
    except SQLAlchemyError:
        logger.exception("Error listing users")
        raise HTTPException(status_code=500, detail="Failed to list users")


@router.patch("/{user_id}", response_model=UserOut)
def change_user_role(
    user_id: int,
    data: RoleUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        users = UserRepository(db)
        user = _target(users, user_id, admin, "change the role of")
        logger.info("%s set role of user %s to %s", admin.email, user_id, data.role)
        return users.update_role(user, data.role)
    except HTTPException:
        raise
    except SQLAlchemyError:
        logger.exception("Error changing role of user %s", user_id)
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update user")


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete a user with their posts; their comments disappear from threads"""
    try:
        users = UserRepository(db)
        user = _target(users, user_id, admin, "delete")
        users.delete(user)
        logger.info("%s deleted user %s", admin.email, user_id)
        return {"message": "User deleted successfully"}
    except HTTPException:
        raise
    except SQLAlchemyError:
        logger.exception("Error deleting user %s", user_id)
        db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete user")

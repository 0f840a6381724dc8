# module unishift.users.views
"""
API profils utilisateurs (JSON).
- Création du profil après inscription Supabase (POST /users)
- Lecture, rôles et statuts; les opérations d’administration passent par require_admin
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from unishift.errors import ServiceError, ProcessingError
from unishift.utils.security import require_admin
from .repository import UsersRepository, get_users_repository
from . import service as users_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Users API"])


class UserCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    photo_url: Optional[str] = Field(default=None, alias="photoURL")


class RoleUpdate(BaseModel):
    role: Optional[str] = None


class StatusUpdate(BaseModel):
    status: Optional[str] = None


def _failure(message: str, e: Exception) -> ProcessingError:
    logger.exception("users: %s", message)
    return ProcessingError(message, error=str(e))


@router.post("/users")
def create_user(body: UserCreate, users: UsersRepository = Depends(get_users_repository)):
    try:
        user, created = users_service.register_user(users, body.email, body.display_name, body.photo_url)
    except ServiceError:
        raise
    except Exception as e:
        raise _failure("Failed to create user", e)
    if not created:
        return {"success": True, "message": "User already exists", "user": user}
    return JSONResponse(
        status_code=201,
        content={"success": True, "message": "User created successfully", "user": user},
    )


@router.get("/users/stats/overview")
def users_overview(
    _: Dict[str, Any] = Depends(require_admin),
    users: UsersRepository = Depends(get_users_repository),
):
    try:
        return {"success": True, "stats": users_service.user_stats(users)}
    except Exception as e:
        raise _failure("Failed to fetch user statistics", e)


@router.get("/users")
@router.get("/admin/users")
def list_users(
    _: Dict[str, Any] = Depends(require_admin),
    users: UsersRepository = Depends(get_users_repository),
):
    try:
        items = users.list_all()
    except Exception as e:
        raise _failure("Failed to fetch users", e)
    return {"success": True, "count": len(items), "users": items}


@router.get("/users/{email}")
def get_user(email: str, users: UsersRepository = Depends(get_users_repository)):
    try:
        return {"success": True, "user": users_service.touch_login(users, email)}
    except ServiceError:
        raise
    except Exception as e:
        raise _failure("Failed to fetch user", e)


@router.get("/users/{email}/check-admin")
def check_admin(email: str, users: UsersRepository = Depends(get_users_repository)):
    try:
        return users_service.admin_check(users, email)
    except Exception as e:
        raise _failure("Failed to check admin status", e)


@router.patch("/users/{email}/role")
def update_role(
    email: str,
    body: RoleUpdate,
    _: Dict[str, Any] = Depends(require_admin),
    users: UsersRepository = Depends(get_users_repository),
):
    try:
        role = users_service.change_role(users, email, body.role)
    except ServiceError:
        raise
    except Exception as e:
        raise _failure("Failed to update user role", e)
    return {"success": True, "message": f"User role updated to {role}"}


@router.patch("/users/{email}/status")
def update_status(
    email: str,
    body: StatusUpdate,
    _: Dict[str, Any] = Depends(require_admin),
    users: UsersRepository = Depends(get_users_repository),
):
    try:
        status = users_service.change_status(users, email, body.status)
    except ServiceError:
        raise
    except Exception as e:
        raise _failure("Failed to update user status", e)
    return {"success": True, "message": f"User status updated to {status}"}


@router.delete("/users/{email}")
def delete_user(
    email: str,
    _: Dict[str, Any] = Depends(require_admin),
    users: UsersRepository = Depends(get_users_repository),
):
    try:
        users_service.remove_user(users, email)
    except ServiceError:
        raise
    except Exception as e:
        raise _failure("Failed to delete user", e)
    return {"success": True, "message": "User deleted successfully"}

"""
Profils applicatifs et rôles.
Rôles: user | admin | rider. Statuts: active | suspended | banned.
"""
from typing import Any, Dict, Optional, Tuple
import logging

from unishift.config import ADMIN_EMAILS
from unishift.errors import ValidationFailed, NotFound
from unishift.utils.dates import now_iso, days_ago_iso
from .repository import UsersRepository

logger = logging.getLogger(__name__)

VALID_ROLES = ("user", "admin", "rider")
VALID_STATUSES = ("active", "suspended", "banned")


def determine_role(email: str) -> str:
    return "admin" if email in ADMIN_EMAILS else "user"


def register_user(
    users: UsersRepository,
    email: Optional[str],
    display_name: Optional[str] = None,
    photo_url: Optional[str] = None,
) -> Tuple[Dict[str, Any], bool]:
    """Crée le profil s’il n’existe pas. Retour: (profil, créé?)."""
    email = (email or "").strip()
    if not email:
        raise ValidationFailed("Email is required")

    existing = users.get_by_email(email)
    if existing:
        return existing, False

    now = now_iso()
    profile = {
        "email": email,
        "display_name": display_name or "User",
        "photo_url": photo_url,
        "role": determine_role(email),
        "status": "active",
        "created_at": now,
        "updated_at": now,
        "last_login": now,
    }
    row = users.insert(profile)
    logger.info("users.create email=%s role=%s", email, profile["role"])
    return row, True


def touch_login(users: UsersRepository, email: str) -> Dict[str, Any]:
    """Profil par email; met à jour last_login au passage."""
    user = users.get_by_email(email)
    if not user:
        raise NotFound("User not found")
    now = now_iso()
    users.update_by_email(email, {"last_login": now, "updated_at": now})
    return user


def change_role(users: UsersRepository, email: str, role: Optional[str]) -> str:
    if role not in VALID_ROLES:
        raise ValidationFailed("Invalid role. Must be 'user', 'admin', or 'rider'")
    if users.update_by_email(email, {"role": role, "updated_at": now_iso()}) == 0:
        raise NotFound("User not found")
    logger.info("users.role email=%s role=%s", email, role)
    return role


def change_status(users: UsersRepository, email: str, status: Optional[str]) -> str:
    if status not in VALID_STATUSES:
        raise ValidationFailed("Invalid status. Must be 'active', 'suspended', or 'banned'")
    if users.update_by_email(email, {"status": status, "updated_at": now_iso()}) == 0:
        raise NotFound("User not found")
    logger.info("users.status email=%s status=%s", email, status)
    return status


def remove_user(users: UsersRepository, email: str) -> None:
    if users.delete_by_email(email) == 0:
        raise NotFound("User not found")
    logger.info("users.delete email=%s", email)


def admin_check(users: UsersRepository, email: str) -> Dict[str, Any]:
    user = users.get_by_email(email) or {}
    role = user.get("role") or "user"
    return {"success": True, "isAdmin": role == "admin", "role": role}


def user_stats(users: UsersRepository) -> Dict[str, int]:
    return {
        "totalUsers": users.count(),
        "activeUsers": users.count({"status": "active"}),
        "adminUsers": users.count({"role": "admin"}),
        "riderUsers": users.count({"role": "rider"}),
        "suspendedUsers": users.count({"status": "suspended"}),
        "recentUsers": users.count(created_since=days_ago_iso(7)),
    }

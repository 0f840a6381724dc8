from fastapi import Request, Depends
from typing import Any, Dict

from unishift.errors import Unauthorized, Forbidden, NotFound
from unishift.users.repository import UsersRepository, get_users_repository

ROLE_ADMIN = "admin"


def bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip()
    return ""


def get_current_user(request: Request) -> Dict[str, Any]:
    token = bearer_token(request)
    if not token:
        raise Unauthorized("Unauthorized: No token provided")
    # Délégué au service Auth
    from unishift.auth.service import principal_from_token
    return principal_from_token(token)


def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user


def require_admin(
    user: Dict[str, Any] = Depends(require_user),
    users: UsersRepository = Depends(get_users_repository),
) -> Dict[str, Any]:
    profile = users.get_by_email(user.get("email"))
    if not profile:
        raise NotFound("User not found in database")
    if profile.get("role") != ROLE_ADMIN:
        raise Forbidden("Forbidden: Admin access required")
    return user


def require_own_data_or_admin(
    email: str,
    user: Dict[str, Any] = Depends(require_user),
    users: UsersRepository = Depends(get_users_repository),
) -> Dict[str, Any]:
    """
    Accès aux données d’un utilisateur (paramètre de chemin `email`):
    - le propriétaire passe sans lecture BD
    - sinon le profil de l’appelant doit être admin
    """
    if user.get("email") == email:
        return user
    profile = users.get_by_email(user.get("email"))
    if profile and profile.get("role") == ROLE_ADMIN:
        return user
    raise Forbidden("Forbidden: Can only access your own data")

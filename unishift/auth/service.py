"""
Cas d’usage Auth: transforme un access token en principal.
Principal: {"uid", "email", "email_verified", "token"}.
"""
from typing import Any, Dict
import logging

from unishift.errors import Unauthorized
from .repository import get_user_from_access_token

logger = logging.getLogger(__name__)


def principal_from_token(token: str) -> Dict[str, Any]:
    try:
        user = get_user_from_access_token(token)
    except Exception as e:
        if "expired" in str(e).lower():
            raise Unauthorized("Token expired. Please login again.") from e
        logger.info("auth.verify rejected token: %s", e)
        raise Unauthorized("Invalid token") from e

    if not user.get("id"):
        raise Unauthorized("Invalid token")
    return {
        "uid": user.get("id"),
        "email": user.get("email"),
        "email_verified": bool(user.get("email_confirmed_at")),
        "token": token,
    }

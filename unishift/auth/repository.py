"""Accès Supabase Auth: validation d'un access token."""
from typing import Any, Dict

import unishift.infra.supabase_client as supabase_client


def get_user_from_access_token(access_token: str) -> Dict[str, Any]:
    """Récupère et normalise l’utilisateur depuis supabase.auth.get_user(access_token)."""
    res = supabase_client.get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {
            "id": getattr(user, "id", None),
            "email": getattr(user, "email", None),
            "email_confirmed_at": getattr(user, "email_confirmed_at", None),
        }
    return user or {}

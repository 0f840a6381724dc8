"""Couche d’accès aux données (Supabase) pour la table 'users' (profils applicatifs et rôles)."""
from typing import Any, Dict, List, Optional
from supabase import Client

import unishift.infra.supabase_client as supabase_client
from unishift.infra.postgrest import rows, first_row

TABLE = "users"


class UsersRepository:
    def __init__(self, client: Client):
        self.client = client

    def _table(self):
        return self.client.table(TABLE)

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        if not email:
            return None
        res = self._table().select("*").eq("email", email).limit(1).execute()
        return first_row(res)

    def list_all(self) -> List[Dict[str, Any]]:
        return rows(self._table().select("*").order("created_at", desc=True).execute())

    def insert(self, user: Dict[str, Any]) -> Dict[str, Any]:
        res = self._table().insert(user).execute()
        return first_row(res) or user

    def update_by_email(self, email: str, data: Dict[str, Any]) -> int:
        """Retourne le nombre de profils correspondants (et donc modifiés)."""
        res = self._table().update(data).eq("email", email).execute()
        return len(rows(res))

    def delete_by_email(self, email: str) -> int:
        res = self._table().delete().eq("email", email).execute()
        return len(rows(res))

    def count(self, filters: Optional[Dict[str, Any]] = None, created_since: Optional[str] = None) -> int:
        """
        Compte les profils via count='exact'.
        - filters: égalités simples (ex: {"role": "admin"})
        - created_since: ISO timestamp, borne inférieure sur created_at
        """
        query = self._table().select("id", count="exact")
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        if created_since:
            query = query.gte("created_at", created_since)
        res = query.execute()
        if getattr(res, "count", None) is not None:
            return int(res.count)
        return len(rows(res))


def get_users_repository() -> UsersRepository:
    return UsersRepository(supabase_client.get_service_supabase())

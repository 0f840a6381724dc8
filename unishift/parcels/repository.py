"""
Accès aux données pour la table 'parcels'.
Les erreurs Supabase ne sont pas masquées: elles remontent jusqu'à la vue, qui les rend en 500.
"""
from typing import Any, Dict, List, Optional
from supabase import Client

import unishift.infra.supabase_client as supabase_client
from unishift.infra.postgrest import rows, first_row

TABLE = "parcels"

STATUS_UNPAID = "unpaid"
STATUS_PAID = "paid"


class ParcelsRepository:
    def __init__(self, client: Client):
        self.client = client

    def _table(self):
        return self.client.table(TABLE)

    def find_by_id(self, parcel_id: str) -> Optional[Dict[str, Any]]:
        res = self._table().select("*").eq("id", parcel_id).limit(1).execute()
        return first_row(res)

    def list_all(self) -> List[Dict[str, Any]]:
        res = self._table().select("*").order("created_at", desc=True).execute()
        return rows(res)

    def list_by_sender(self, email: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        query = self._table().select("*").eq("sender_email", email)
        if status:
            query = query.eq("status", status)
        return rows(query.order("created_at", desc=True).execute())

    def search_by_receiver_phone(self, sender_email: str, phone: str) -> List[Dict[str, Any]]:
        res = (
            self._table()
            .select("*")
            .eq("sender_email", sender_email)
            .eq("receiver_phone", phone)
            .order("created_at", desc=True)
            .execute()
        )
        return rows(res)

    def insert(self, parcel: Dict[str, Any]) -> Dict[str, Any]:
        res = self._table().insert(parcel).execute()
        return first_row(res) or parcel

    def delete(self, parcel_id: str) -> int:
        res = self._table().delete().eq("id", parcel_id).execute()
        return len(rows(res))

    def mark_paid(self, parcel_id: str, fields: Dict[str, Any]) -> int:
        """
        Passe un colis 'unpaid' -> 'paid' avec les champs de paiement fournis.
        Mise à jour conditionnelle (status = unpaid): retourne le nombre de lignes modifiées.
        """
        payload = dict(fields)
        payload["status"] = STATUS_PAID
        res = (
            self._table()
            .update(payload)
            .eq("id", parcel_id)
            .eq("status", STATUS_UNPAID)
            .execute()
        )
        return len(rows(res))


def get_parcels_repository() -> ParcelsRepository:
    return ParcelsRepository(supabase_client.get_service_supabase())

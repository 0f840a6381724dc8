"""
Accès aux données pour la table 'payments' (enregistrements append-only).
stripe_session_id porte une contrainte UNIQUE (voir supabase/schema.sql).
"""
from typing import Any, Dict, List, Optional
import logging
from supabase import Client

import unishift.infra.supabase_client as supabase_client
from unishift.infra.postgrest import rows, first_row, is_unique_violation

logger = logging.getLogger(__name__)

TABLE = "payments"


class DuplicatePaymentError(Exception):
    """Un paiement existe déjà pour cette session Stripe (violation 23505)."""

    def __init__(self, session_id: str):
        super().__init__(f"payment already recorded for session {session_id}")
        self.session_id = session_id


class PaymentsRepository:
    def __init__(self, client: Client):
        self.client = client

    def _table(self):
        return self.client.table(TABLE)

    def find_by_session_id(self, session_id: str) -> Optional[Dict[str, Any]]:
        res = self._table().select("*").eq("stripe_session_id", session_id).limit(1).execute()
        return first_row(res)

    def find_by_id(self, payment_id: str) -> Optional[Dict[str, Any]]:
        res = self._table().select("*").eq("id", payment_id).limit(1).execute()
        return first_row(res)

    def list_all(self) -> List[Dict[str, Any]]:
        return rows(self._table().select("*").order("created_at", desc=True).execute())

    def list_by_user(self, email: str) -> List[Dict[str, Any]]:
        res = self._table().select("*").eq("user_id", email).order("created_at", desc=True).execute()
        return rows(res)

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        try:
            res = self._table().insert(record).execute()
        except Exception as e:
            if is_unique_violation(e):
                logger.info("payments.repository.insert duplicate session_id=%s", record.get("stripe_session_id"))
                raise DuplicatePaymentError(record.get("stripe_session_id") or "") from e
            raise
        return first_row(res) or record


def get_payments_repository() -> PaymentsRepository:
    return PaymentsRepository(supabase_client.get_service_supabase())

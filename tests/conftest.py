import os

# Pas de Redis pendant les tests: le lifespan désactive le rate limiting
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import copy
import uuid
from typing import Any, Dict, Generator, List, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from unishift.app import app as fastapi_app
from unishift.utils.security import get_current_user
from unishift.parcels.repository import get_parcels_repository, STATUS_UNPAID, STATUS_PAID
from unishift.payments.repository import get_payments_repository, DuplicatePaymentError
from unishift.users.repository import get_users_repository


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


# --- Repositories en mémoire (même interface que les repositories Supabase) ---

class FakeParcelsRepository:
    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}

    def add(self, **fields) -> Dict[str, Any]:
        parcel = {
            "id": str(uuid.uuid4()),
            "parcel_name": "Books",
            "sender_name": "Rahim",
            "sender_email": "sender@example.com",
            "sender_district": "Dhaka",
            "receiver_district": "Sylhet",
            "receiver_phone": "01700000000",
            "cost": 1100,
            "status": STATUS_UNPAID,
            "created_at": "2024-01-01T00:00:00+00:00",
        }
        parcel.update(fields)
        self.rows[parcel["id"]] = parcel
        return parcel

    def find_by_id(self, parcel_id: str) -> Optional[Dict[str, Any]]:
        row = self.rows.get(parcel_id)
        return copy.deepcopy(row) if row else None

    def list_all(self) -> List[Dict[str, Any]]:
        return list(self.rows.values())

    def list_by_sender(self, email: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            p for p in self.rows.values()
            if p.get("sender_email") == email and (status is None or p.get("status") == status)
        ]

    def search_by_receiver_phone(self, sender_email: str, phone: str) -> List[Dict[str, Any]]:
        return [
            p for p in self.rows.values()
            if p.get("sender_email") == sender_email and p.get("receiver_phone") == phone
        ]

    def insert(self, parcel: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(parcel, id=str(uuid.uuid4()))
        self.rows[row["id"]] = row
        return row

    def delete(self, parcel_id: str) -> int:
        return 1 if self.rows.pop(parcel_id, None) else 0

    def mark_paid(self, parcel_id: str, fields: Dict[str, Any]) -> int:
        row = self.rows.get(parcel_id)
        if not row or row.get("status") != STATUS_UNPAID:
            return 0
        row.update(fields)
        row["status"] = STATUS_PAID
        return 1


class FakePaymentsRepository:
    """Applique la contrainte UNIQUE(stripe_session_id) comme PostgreSQL."""

    def __init__(self):
        self.rows: List[Dict[str, Any]] = []

    def find_by_session_id(self, session_id: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self.rows if p.get("stripe_session_id") == session_id), None)

    def find_by_id(self, payment_id: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self.rows if p.get("id") == payment_id), None)

    def list_all(self) -> List[Dict[str, Any]]:
        return list(self.rows)

    def list_by_user(self, email: str) -> List[Dict[str, Any]]:
        return [p for p in self.rows if p.get("user_id") == email]

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        if any(p.get("stripe_session_id") == record.get("stripe_session_id") for p in self.rows):
            raise DuplicatePaymentError(record.get("stripe_session_id"))
        row = dict(record, id=str(uuid.uuid4()))
        self.rows.append(row)
        return row


class FakeUsersRepository:
    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}

    def add(self, email: str, role: str = "user", status: str = "active", **fields) -> Dict[str, Any]:
        user = {"id": str(uuid.uuid4()), "email": email, "role": role, "status": status,
                "created_at": "2024-01-01T00:00:00+00:00"}
        user.update(fields)
        self.rows[email] = user
        return user

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.rows.get(email)

    def list_all(self) -> List[Dict[str, Any]]:
        return list(self.rows.values())

    def insert(self, user: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(user, id=str(uuid.uuid4()))
        self.rows[row["email"]] = row
        return row

    def update_by_email(self, email: str, data: Dict[str, Any]) -> int:
        if email not in self.rows:
            return 0
        self.rows[email].update(data)
        return 1

    def delete_by_email(self, email: str) -> int:
        return 1 if self.rows.pop(email, None) else 0

    def count(self, filters: Optional[Dict[str, Any]] = None, created_since: Optional[str] = None) -> int:
        total = 0
        for u in self.rows.values():
            if any(u.get(k) != v for k, v in (filters or {}).items()):
                continue
            if created_since and (u.get("created_at") or "") < created_since:
                continue
            total += 1
        return total


@pytest.fixture
def parcels_repo() -> FakeParcelsRepository:
    return FakeParcelsRepository()


@pytest.fixture
def payments_repo() -> FakePaymentsRepository:
    return FakePaymentsRepository()


@pytest.fixture
def users_repo() -> FakeUsersRepository:
    return FakeUsersRepository()


@pytest.fixture
def principal() -> Dict[str, Any]:
    """Utilisateur authentifié simulé (mutable: les tests peuvent changer l’email)."""
    return {"uid": "uid-sender", "email": "sender@example.com", "email_verified": True, "token": "fake-token"}


@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture(autouse=True)
def _override_dependencies(app, parcels_repo, payments_repo, users_repo, principal):
    app.dependency_overrides[get_parcels_repository] = lambda: parcels_repo
    app.dependency_overrides[get_payments_repository] = lambda: payments_repo
    app.dependency_overrides[get_users_repository] = lambda: users_repo
    app.dependency_overrides[get_current_user] = lambda: principal
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _no_real_supabase(monkeypatch):
    monkeypatch.setattr("unishift.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("unishift.infra.supabase_client.get_service_supabase", lambda: MagicMock())


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def as_admin(users_repo, principal) -> Dict[str, Any]:
    users_repo.add("admin@example.com", role="admin")
    principal["email"] = "admin@example.com"
    principal["uid"] = "uid-admin"
    return principal


class FakeStripe:
    """Remplace les appels réseau de unishift.payments.stripe_client."""

    def __init__(self):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.payment_methods: Dict[str, Dict[str, Any]] = {}
        self.created: List[Dict[str, Any]] = []

    def add_paid_session(self, session_id: str, parcel_id: str, amount_total: int = 1000, **fields) -> Dict[str, Any]:
        session = {
            "id": session_id,
            "payment_status": "paid",
            "payment_intent": f"pi_{session_id}",
            "amount_total": amount_total,
            "currency": "usd",
            "customer_email": "sender@example.com",
            "metadata": {"parcelId": parcel_id},
        }
        session.update(fields)
        self.sessions[session_id] = session
        self.intents[session["payment_intent"]] = {
            "id": session["payment_intent"],
            "latest_charge": {
                "id": f"ch_{session_id}",
                "payment_method_details": {"card": {"brand": "visa", "last4": "4242"}},
            },
        }
        return session

    def create_session(self, **params) -> Dict[str, Any]:
        self.created.append(params)
        sid = f"cs_test_{len(self.created)}"
        return {"id": sid, "url": f"https://checkout.stripe.test/{sid}"}

    def get_session(self, session_id: str) -> Dict[str, Any]:
        if session_id not in self.sessions:
            raise RuntimeError(f"No such checkout.session: '{session_id}'")
        return self.sessions[session_id]

    def retrieve_payment_intent(self, payment_intent_id: str, expand=None) -> Dict[str, Any]:
        return self.intents[payment_intent_id]

    def retrieve_payment_method(self, payment_method_id: str) -> Dict[str, Any]:
        return self.payment_methods[payment_method_id]


@pytest.fixture
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    for name in ("create_session", "get_session", "retrieve_payment_intent", "retrieve_payment_method"):
        monkeypatch.setattr(f"unishift.payments.stripe_client.{name}", getattr(fake, name))
    return fake

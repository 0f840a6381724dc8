"""
Cas d'usage 'payments': orchestre repositories, client Stripe, extracteur et numéros de suivi.

- create_checkout_session: vérifie le colis, convertit BDT -> cents USD, crée la session Stripe.
- verify_payment: confirmation sans webhook (idempotente), enregistre le paiement et passe le colis à 'paid'.
- settle_manually: paiement hors Stripe (ex: cash à la livraison), même transition d'état.
- payment_stats: agrégats pour le tableau de bord admin.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional
import logging

from unishift.config import (
    BDT_PER_USD,
    SETTLEMENT_CURRENCY,
    CLIENT_URL,
    CHECKOUT_SUCCESS_PATH,
    CHECKOUT_CANCEL_PATH,
)
from unishift.errors import (
    ValidationFailed,
    NotFound,
    Conflict,
    PaymentIncomplete,
    GatewayError,
    ProcessingError,
)
from unishift.parcels.repository import ParcelsRepository, STATUS_UNPAID
from unishift.utils.dates import now_iso, parse_iso, start_of_today
from unishift.utils.validators import is_valid_id
from . import stripe_client
from .extractor import PaymentDetails, extract_payment_details
from .repository import PaymentsRepository, DuplicatePaymentError
from .tracking import generate_tracking_number

logger = logging.getLogger(__name__)

PAYMENT_METHOD_STRIPE = "stripe"
PAYMENT_STATUS_SUCCEEDED = "succeeded"


def round_half_up(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_settlement_minor_units(amount_bdt) -> int:
    """Montant BDT -> plus petite unité de la devise Stripe (cents), arrondi à l'entier le plus proche."""
    return round_half_up(Decimal(str(amount_bdt)) / Decimal(str(BDT_PER_USD)) * 100)


@dataclass(frozen=True)
class VerificationResult:
    tracking_no: Optional[str]
    already_verified: bool = False

    @property
    def message(self) -> str:
        return "Payment already verified" if self.already_verified else "Payment verified successfully"


def _require_parcel_id(parcel_id: str) -> None:
    if not is_valid_id(parcel_id):
        raise ValidationFailed("Invalid parcel ID")


def _load_parcel(parcels: ParcelsRepository, parcel_id: str) -> Dict[str, Any]:
    parcel = parcels.find_by_id(parcel_id)
    if not parcel:
        raise NotFound("Parcel not found")
    return parcel


# --- Checkout -------------------------------------------------------------

def checkout_urls(parcel_id: str) -> Dict[str, str]:
    success_url = (
        f"{CLIENT_URL}{CHECKOUT_SUCCESS_PATH}"
        f"?session_id={{CHECKOUT_SESSION_ID}}&parcel_id={parcel_id}"
    )
    cancel_url = f"{CLIENT_URL}{CHECKOUT_CANCEL_PATH}/{parcel_id}"
    return {"success_url": success_url, "cancel_url": cancel_url}


def create_checkout_session(
    parcels: ParcelsRepository,
    *,
    parcel_id: str,
    amount,
    parcel_name: Optional[str],
    customer_email: Optional[str],
) -> Dict[str, Any]:
    """
    Crée la session Checkout pour un colis impayé.
    Retour: {"session_id": "cs_...", "url": "https://checkout.stripe.com/..."}
    """
    _require_parcel_id(parcel_id)
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)) or amount <= 0:
        raise ValidationFailed("Invalid amount")
    parcel = _load_parcel(parcels, parcel_id)
    if parcel.get("status") != STATUS_UNPAID:
        raise Conflict("Parcel is already paid")

    unit_amount = to_settlement_minor_units(amount)
    name = parcel_name or parcel.get("parcel_name") or "Parcel"
    line_items = [
        {
            "price_data": {
                "currency": SETTLEMENT_CURRENCY,
                "product_data": {
                    "name": f"Parcel Delivery - {name}",
                    "description": (
                        f"Delivery from {parcel.get('sender_district') or '-'}"
                        f" to {parcel.get('receiver_district') or '-'}"
                    ),
                },
                "unit_amount": unit_amount,
            },
            "quantity": 1,
        }
    ]
    metadata = {
        "parcelId": str(parcel_id),
        "amount": str(amount),
        "customerEmail": customer_email or "",
    }
    try:
        session = stripe_client.create_session(
            line_items=line_items,
            mode="payment",
            metadata=metadata,
            customer_email=customer_email,
            **checkout_urls(parcel_id),
        )
    except Exception as e:
        logger.exception("payments.checkout stripe failure parcel_id=%s", parcel_id)
        raise GatewayError("Failed to create checkout session", error=str(e)) from e

    logger.info("payments.checkout session_id=%s parcel_id=%s unit_amount=%s", session.get("id"), parcel_id, unit_amount)
    return {"session_id": session.get("id"), "url": session.get("url")}


# --- Vérification ---------------------------------------------------------

def collect_payment_details(payment_intent_id: Optional[str]) -> PaymentDetails:
    """
    Détails transaction/carte, best-effort: toute erreur donne des détails vides
    (la vérification du paiement ne doit pas échouer pour des métadonnées carte).
    """
    if not payment_intent_id:
        return PaymentDetails()
    try:
        intent = stripe_client.retrieve_payment_intent(payment_intent_id)
        return extract_payment_details(intent, stripe_client.retrieve_payment_method)
    except Exception as e:
        logger.warning("payments.verify payment details unavailable intent=%s: %s", payment_intent_id, e)
        return PaymentDetails()


def build_payment_record(
    parcel: Dict[str, Any],
    session: Dict[str, Any],
    details: PaymentDetails,
    *,
    parcel_id: str,
    session_id: str,
    tracking_no: str,
    paid_at: str,
) -> Dict[str, Any]:
    customer_details = session.get("customer_details") or {}
    return {
        "parcel_id": parcel_id,
        "user_id": parcel.get("sender_email"),
        "user_name": parcel.get("sender_name"),
        "amount": parcel.get("cost"),
        "amount_paid_usd": (session.get("amount_total") or 0) / 100,
        "currency": session.get("currency"),
        "payment_method": PAYMENT_METHOD_STRIPE,
        "payment_status": PAYMENT_STATUS_SUCCEEDED,
        "stripe_session_id": session_id,
        "stripe_payment_intent_id": stripe_ref(session.get("payment_intent")),
        "stripe_transaction_id": details.transaction_id,
        "stripe_customer_email": session.get("customer_email") or customer_details.get("email"),
        "card_brand": details.card.brand,
        "card_last4": details.card.last4,
        "parcel_name": parcel.get("parcel_name"),
        "tracking_number": tracking_no,
        "route": f"{parcel.get('sender_district')} → {parcel.get('receiver_district')}",
        "paid_at": paid_at,
        "created_at": paid_at,
    }


def stripe_ref(value) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("id")
    return value or None


def verify_payment(
    parcels: ParcelsRepository,
    payments: PaymentsRepository,
    *,
    session_id: str,
    parcel_id: str,
) -> VerificationResult:
    """
    Confirme une session Checkout sans webhook:
    1) paiement déjà enregistré pour cette session -> renvoie son numéro de suivi
    2) session Stripe 'paid' exigée
    3) colis existant, 4) déjà payé -> renvoie son numéro de suivi
    5) numéro de suivi, 6) détails carte (best-effort)
    7) insertion du paiement (doublon concurrent = déjà vérifié), 8) colis -> 'paid'
    """
    if not session_id:
        raise ValidationFailed("Session ID is required")
    _require_parcel_id(parcel_id)

    existing = payments.find_by_session_id(session_id)
    if existing:
        return VerificationResult(existing.get("tracking_number"), already_verified=True)

    try:
        session = stripe_client.get_session(session_id)
    except Exception as e:
        logger.exception("payments.verify stripe session retrieve failed session_id=%s", session_id)
        raise GatewayError("Failed to verify payment", error=str(e)) from e

    if session.get("payment_status") != "paid":
        raise PaymentIncomplete("Payment not completed")

    meta_parcel_id = (session.get("metadata") or {}).get("parcelId")
    if meta_parcel_id and meta_parcel_id != parcel_id:
        raise ValidationFailed("Checkout session does not belong to this parcel")

    parcel = _load_parcel(parcels, parcel_id)
    if parcel.get("status") != STATUS_UNPAID:
        return VerificationResult(parcel.get("tracking_no"), already_verified=True)

    tracking_no = generate_tracking_number()
    payment_intent_id = stripe_ref(session.get("payment_intent"))
    details = collect_payment_details(payment_intent_id)
    paid_at = now_iso()

    record = build_payment_record(
        parcel, session, details,
        parcel_id=parcel_id, session_id=session_id, tracking_no=tracking_no, paid_at=paid_at,
    )
    try:
        payments.insert(record)
    except DuplicatePaymentError:
        stored = payments.find_by_session_id(session_id) or {}
        logger.info("payments.verify concurrent verification session_id=%s", session_id)
        return VerificationResult(stored.get("tracking_number"), already_verified=True)

    updated = parcels.mark_paid(parcel_id, {
        "tracking_no": tracking_no,
        "payment_method": PAYMENT_METHOD_STRIPE,
        "stripe_session_id": session_id,
        "stripe_payment_intent_id": payment_intent_id,
        "stripe_transaction_id": details.transaction_id,
        "paid_amount": (session.get("amount_total") or 0) / 100,
        "paid_at": paid_at,
        "updated_at": paid_at,
    })
    if updated == 0:
        # Le paiement est déjà enregistré: pas de compensation
        logger.error("payments.verify parcel update failed parcel_id=%s session_id=%s", parcel_id, session_id)
        raise ProcessingError("Failed to update parcel")

    logger.info("payments.verify tracking_no=%s parcel_id=%s session_id=%s", tracking_no, parcel_id, session_id)
    return VerificationResult(tracking_no)


# --- Paiement manuel ------------------------------------------------------

def settle_manually(
    parcels: ParcelsRepository,
    *,
    parcel_id: str,
    payment_method: Optional[str],
    amount,
) -> Dict[str, Any]:
    """Paiement hors passerelle (cash à la livraison...): aucun enregistrement 'payments'."""
    _require_parcel_id(parcel_id)
    parcel = _load_parcel(parcels, parcel_id)
    if parcel.get("status") != STATUS_UNPAID:
        raise Conflict("Parcel is already paid")

    tracking_no = generate_tracking_number()
    paid_at = now_iso()
    updated = parcels.mark_paid(parcel_id, {
        "tracking_no": tracking_no,
        "payment_method": payment_method,
        "paid_amount": amount,
        "paid_at": paid_at,
        "updated_at": paid_at,
    })
    if updated == 0:
        raise ProcessingError("Failed to process payment")

    logger.info("payments.manual tracking_no=%s parcel_id=%s method=%s", tracking_no, parcel_id, payment_method)
    return {"id": parcel_id, "tracking_no": tracking_no, "status": "paid"}


# --- Statistiques ---------------------------------------------------------

def _number(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def payment_stats(records: List[Dict[str, Any]], now=None) -> Dict[str, Any]:
    total = len(records)
    revenue_bdt = sum(_number(p.get("amount")) for p in records)
    revenue_usd = sum(_number(p.get("amount_paid_usd")) for p in records)
    successful = sum(1 for p in records if p.get("payment_status") == PAYMENT_STATUS_SUCCEEDED)

    today = start_of_today(now)
    today_records = []
    for p in records:
        created = parse_iso(p.get("created_at"))
        if created and created >= today:
            today_records.append(p)
    today_revenue = sum(_number(p.get("amount")) for p in today_records)

    return {
        "totalPayments": total,
        "successfulPayments": successful,
        "totalRevenueBDT": round_half_up(revenue_bdt),
        "totalRevenueUSD": f"{revenue_usd:.2f}",
        "todayPayments": len(today_records),
        "todayRevenueBDT": round_half_up(today_revenue),
        "averageTransactionBDT": round_half_up(revenue_bdt / total) if total else 0,
    }

import logging
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from unishift.errors import ServiceError, ValidationFailed, NotFound, ProcessingError
from unishift.parcels.repository import ParcelsRepository, get_parcels_repository
from unishift.utils.rate_limit import optional_rate_limit
from unishift.utils.security import require_user, require_admin, require_own_data_or_admin
from unishift.utils.validators import is_valid_id
from .repository import PaymentsRepository, get_payments_repository
from . import service as payments_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Payments API"])


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    parcel_id: str = ""
    # int conservé tel quel: la metadata Stripe porte le montant brut ("1100", pas "1100.0")
    amount: Union[int, float]
    parcel_name: Optional[str] = None
    customer_email: Optional[str] = None


class VerifyRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str = ""
    parcel_id: str = ""


@router.post("/create-checkout-session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(
    body: CheckoutRequest,
    user: Dict[str, Any] = Depends(require_user),
    parcels: ParcelsRepository = Depends(get_parcels_repository),
):
    """
    Crée une session Checkout Stripe pour un colis impayé.
    - Entrée JSON: { "parcelId": "...", "amount": 1100, "parcelName": "...", "customerEmail": "..." }
    - Sécurité: require_user + rate limit (10 req / 60s)
    - Montant en BDT converti en cents USD (taux fixe)
    - Réponse: { "success": true, "sessionId": "cs_...", "url": "https://checkout.stripe.com/..." }
    """
    try:
        session = payments_service.create_checkout_session(
            parcels,
            parcel_id=body.parcel_id,
            amount=body.amount,
            parcel_name=body.parcel_name,
            customer_email=body.customer_email or user.get("email"),
        )
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("Erreur create_checkout_session")
        raise ProcessingError("Failed to create checkout session", error=str(e))
    return {"success": True, "sessionId": session["session_id"], "url": session["url"]}


@router.post("/verify-payment", dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
def verify_payment(
    body: VerifyRequest,
    user: Dict[str, Any] = Depends(require_user),
    parcels: ParcelsRepository = Depends(get_parcels_repository),
    payments: PaymentsRepository = Depends(get_payments_repository),
):
    """
    Alternative sans webhook: confirme la session Stripe, enregistre le paiement et attribue le numéro de suivi.
    - Idempotent: un second appel renvoie le même numéro ("Payment already verified")
    - Erreurs: 400 si paiement non confirmé ou entrée invalide, 404 si colis absent
    """
    try:
        result = payments_service.verify_payment(
            parcels,
            payments,
            session_id=body.session_id.strip(),
            parcel_id=body.parcel_id.strip(),
        )
    except ServiceError:
        raise
    except Exception as e:
        logger.exception("Erreur verify_payment")
        raise ProcessingError("Failed to verify payment", error=str(e))
    return {"success": True, "message": result.message, "tracking_no": result.tracking_no}


@router.get("/payments")
def list_payments(
    _: Dict[str, Any] = Depends(require_admin),
    payments: PaymentsRepository = Depends(get_payments_repository),
):
    try:
        items = payments.list_all()
    except Exception as e:
        logger.exception("Erreur list_payments")
        raise ProcessingError("Failed to fetch payments", error=str(e))
    return {"success": True, "count": len(items), "payments": items}


@router.get("/payments/stats/overview")
def payments_overview(
    _: Dict[str, Any] = Depends(require_admin),
    payments: PaymentsRepository = Depends(get_payments_repository),
):
    try:
        stats = payments_service.payment_stats(payments.list_all())
    except Exception as e:
        logger.exception("Erreur payments_overview")
        raise ProcessingError("Failed to fetch payment statistics", error=str(e))
    return {"success": True, "stats": stats}


@router.get("/payments/user/{email}")
def list_user_payments(
    email: str,
    _: Dict[str, Any] = Depends(require_own_data_or_admin),
    payments: PaymentsRepository = Depends(get_payments_repository),
):
    try:
        items = payments.list_by_user(email)
    except Exception as e:
        logger.exception("Erreur list_user_payments")
        raise ProcessingError("Failed to fetch payments", error=str(e))
    return {"success": True, "count": len(items), "payments": items}


@router.get("/payments/{payment_id}")
def get_payment(payment_id: str, payments: PaymentsRepository = Depends(get_payments_repository)):
    if not is_valid_id(payment_id):
        raise ValidationFailed("Invalid payment ID")
    try:
        payment = payments.find_by_id(payment_id)
    except Exception as e:
        logger.exception("Erreur get_payment")
        raise ProcessingError("Failed to fetch payment", error=str(e))
    if not payment:
        raise NotFound("Payment not found")
    return {"success": True, "payment": payment}

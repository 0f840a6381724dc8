import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel

from unishift.errors import ServiceError, ProcessingError
from unishift.utils.security import require_user, require_admin, require_own_data_or_admin
from unishift.payments.service import settle_manually
from .repository import ParcelsRepository, get_parcels_repository, STATUS_UNPAID
from . import service as parcels_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/parcels", tags=["Parcels API"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ParcelCreate(CamelModel):
    parcel_type: Optional[str] = None
    parcel_name: Optional[str] = None
    parcel_weight: Optional[float] = None
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None
    sender_phone: Optional[str] = None
    sender_region: Optional[str] = None
    sender_district: Optional[str] = None
    sender_address: Optional[str] = None
    pickup_instruction: Optional[str] = None
    receiver_name: Optional[str] = None
    receiver_email: Optional[EmailStr] = None
    receiver_phone: Optional[str] = None
    receiver_region: Optional[str] = None
    receiver_district: Optional[str] = None
    receiver_address: Optional[str] = None
    delivery_instruction: Optional[str] = None
    cost: Optional[float] = None


class ManualPaymentRequest(CamelModel):
    payment_method: Optional[str] = None
    amount: Optional[float] = None


def _failure(message: str, e: Exception) -> ProcessingError:
    logger.exception("parcels: %s", message)
    return ProcessingError(message, error=str(e))


@router.get("")
def list_parcels(
    _: Dict[str, Any] = Depends(require_admin),
    parcels: ParcelsRepository = Depends(get_parcels_repository),
):
    """Tous les colis, du plus récent au plus ancien (admin)."""
    try:
        return parcels_service.list_response(parcels.list_all(), "parcels")
    except Exception as e:
        raise _failure("Failed to fetch parcels", e)


@router.post("")
def create_parcel(
    body: ParcelCreate,
    user: Dict[str, Any] = Depends(require_user),
    parcels: ParcelsRepository = Depends(get_parcels_repository),
):
    """
    Crée un colis pour l’utilisateur authentifié.
    - Entrée JSON camelCase (senderEmail, receiverDistrict, cost...)
    - 400 si senderEmail manque, 403 si senderEmail n’est pas l’email du token
    """
    try:
        row = parcels_service.create_parcel(parcels, body.model_dump(exclude_none=True), user.get("email"))
    except ServiceError:
        raise
    except Exception as e:
        raise _failure("Failed to create parcel", e)
    return JSONResponse(
        status_code=201,
        content={"success": True, "message": "Parcel created successfully", "parcelId": row.get("id")},
    )


@router.get("/user/{email}")
def list_user_parcels(
    email: str,
    _: Dict[str, Any] = Depends(require_own_data_or_admin),
    parcels: ParcelsRepository = Depends(get_parcels_repository),
):
    try:
        return parcels_service.list_response(parcels.list_by_sender(email), "parcels")
    except Exception as e:
        raise _failure("Failed to fetch parcels", e)


@router.get("/user/{email}/unpaid")
def list_user_unpaid_parcels(email: str, parcels: ParcelsRepository = Depends(get_parcels_repository)):
    try:
        return parcels_service.list_response(parcels.list_by_sender(email, status=STATUS_UNPAID), "parcels")
    except Exception as e:
        raise _failure("Failed to fetch unpaid parcels", e)


@router.get("/search/phone/{phone}")
def search_by_phone(phone: str, email: str = "", parcels: ParcelsRepository = Depends(get_parcels_repository)):
    """Colis de l’expéditeur (?email=) filtrés par téléphone du destinataire."""
    try:
        return parcels_service.list_response(parcels.search_by_receiver_phone(email, phone), "parcels")
    except Exception as e:
        raise _failure("Failed to search parcels", e)


@router.get("/{parcel_id}")
def get_parcel(parcel_id: str, parcels: ParcelsRepository = Depends(get_parcels_repository)):
    try:
        return {"success": True, "parcel": parcels_service.get_parcel(parcels, parcel_id)}
    except ServiceError:
        raise
    except Exception as e:
        raise _failure("Failed to fetch parcel", e)


@router.delete("/{parcel_id}")
def delete_parcel(parcel_id: str, parcels: ParcelsRepository = Depends(get_parcels_repository)):
    try:
        parcels_service.delete_parcel(parcels, parcel_id)
    except ServiceError:
        raise
    except Exception as e:
        raise _failure("Failed to delete parcel", e)
    return {"success": True, "message": "Parcel deleted successfully"}


@router.post("/{parcel_id}/pay")
def pay_parcel(
    parcel_id: str,
    body: ManualPaymentRequest,
    parcels: ParcelsRepository = Depends(get_parcels_repository),
):
    """
    Paiement manuel (hors Stripe): attribue un numéro de suivi et passe le colis à 'paid'.
    Entrée JSON: { "paymentMethod": "cash", "amount": 1100 }
    """
    try:
        parcel = settle_manually(
            parcels,
            parcel_id=parcel_id,
            payment_method=body.payment_method,
            amount=body.amount,
        )
    except ServiceError:
        raise
    except Exception as e:
        raise _failure("Failed to process payment", e)
    return {
        "success": True,
        "message": "Payment processed successfully",
        "tracking_no": parcel["tracking_no"],
        "parcel": parcel,
    }

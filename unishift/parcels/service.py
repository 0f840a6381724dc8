"""Cas d’usage 'parcels': création, lecture et suppression de colis."""
from typing import Any, Dict, List, Optional
import logging

from unishift.errors import ValidationFailed, Forbidden, NotFound, ProcessingError
from unishift.utils.dates import now_iso
from unishift.utils.validators import is_valid_id
from .repository import ParcelsRepository, STATUS_UNPAID

logger = logging.getLogger(__name__)


def create_parcel(parcels: ParcelsRepository, data: Dict[str, Any], caller_email: Optional[str]) -> Dict[str, Any]:
    """
    Crée un colis 'unpaid' pour l’appelant.
    - sender_email obligatoire et identique à l’email vérifié de l’appelant
    - tracking_no n’est attribué qu’au paiement
    """
    sender_email = (data.get("sender_email") or "").strip()
    if not sender_email:
        raise ValidationFailed("Sender email is required")
    if sender_email != caller_email:
        raise Forbidden("Can only create parcels for your own email")

    now = now_iso()
    parcel = dict(data)
    parcel.update({
        "sender_email": sender_email,
        "status": STATUS_UNPAID,
        "created_at": now,
        "updated_at": now,
    })
    # Colonnes réservées au paiement
    for key in ("id", "tracking_no", "paid_at", "paid_amount"):
        parcel.pop(key, None)

    row = parcels.insert(parcel)
    logger.info("parcels.create parcel_id=%s sender=%s", row.get("id"), sender_email)
    return row


def get_parcel(parcels: ParcelsRepository, parcel_id: str) -> Dict[str, Any]:
    if not is_valid_id(parcel_id):
        raise ValidationFailed("Invalid parcel ID")
    parcel = parcels.find_by_id(parcel_id)
    if not parcel:
        raise NotFound("Parcel not found")
    return parcel


def delete_parcel(parcels: ParcelsRepository, parcel_id: str) -> None:
    parcel = get_parcel(parcels, parcel_id)
    if parcel.get("status") != STATUS_UNPAID:
        raise ValidationFailed("Only unpaid parcels can be deleted")
    if parcels.delete(parcel_id) == 0:
        raise ProcessingError("Failed to delete parcel")
    logger.info("parcels.delete parcel_id=%s", parcel_id)


def list_response(items: List[Dict[str, Any]], key: str) -> Dict[str, Any]:
    return {"success": True, "count": len(items), key: items}

"""
Extraction best-effort des détails de paiement (transaction + carte) depuis un PaymentIntent Stripe.

Les sources candidates sont décrites par IntentSources (champs optionnels). Les détails carte sont
obtenus par une liste ordonnée d'extracteurs: le premier qui renvoie un résultat l'emporte.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Sequence
import logging

logger = logging.getLogger(__name__)

PaymentMethodFetcher = Callable[[str], Mapping[str, Any]]


@dataclass(frozen=True)
class CardDetails:
    brand: Optional[str] = None
    last4: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {"last4": self.last4, "brand": self.brand}


@dataclass(frozen=True)
class PaymentDetails:
    transaction_id: Optional[str] = None
    card: CardDetails = field(default_factory=CardDetails)


def _ref_id(value: Any) -> Optional[str]:
    """Référence Stripe: soit un id (str), soit l'objet expansé (mapping avec 'id')."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, Mapping):
        return value.get("id")
    return None


@dataclass(frozen=True)
class IntentSources:
    intent_id: Optional[str] = None
    latest_charge_id: Optional[str] = None
    first_charge: Optional[Mapping[str, Any]] = None
    payment_method_id: Optional[str] = None

    @classmethod
    def from_intent(cls, intent: Optional[Mapping[str, Any]]) -> "IntentSources":
        intent = intent or {}
        latest_charge = intent.get("latest_charge")
        charges = (intent.get("charges") or {}).get("data") or []
        first_charge = charges[0] if charges else None
        if first_charge is None and isinstance(latest_charge, Mapping):
            first_charge = latest_charge
        return cls(
            intent_id=intent.get("id"),
            latest_charge_id=_ref_id(latest_charge),
            first_charge=first_charge,
            payment_method_id=_ref_id(intent.get("payment_method")),
        )

    @property
    def transaction_id(self) -> Optional[str]:
        if self.first_charge and self.first_charge.get("id"):
            return self.first_charge["id"]
        return self.latest_charge_id


def _card(card: Optional[Mapping[str, Any]]) -> Optional[CardDetails]:
    if not card or not card.get("last4"):
        return None
    return CardDetails(brand=card.get("brand"), last4=card.get("last4"))


def card_from_charge(sources: IntentSources, fetch_payment_method: PaymentMethodFetcher) -> Optional[CardDetails]:
    if not sources.first_charge:
        return None
    details = sources.first_charge.get("payment_method_details") or {}
    return _card(details.get("card"))


def card_from_payment_method(sources: IntentSources, fetch_payment_method: PaymentMethodFetcher) -> Optional[CardDetails]:
    if not sources.payment_method_id:
        return None
    try:
        payment_method = fetch_payment_method(sources.payment_method_id) or {}
    except Exception as e:
        logger.warning("payments.extractor payment_method=%s retrieve failed: %s", sources.payment_method_id, e)
        return None
    return _card(payment_method.get("card"))


CARD_EXTRACTORS = (card_from_charge, card_from_payment_method)


def extract_payment_details(
    intent: Optional[Mapping[str, Any]],
    fetch_payment_method: PaymentMethodFetcher,
    extractors: Sequence[Callable[[IntentSources, PaymentMethodFetcher], Optional[CardDetails]]] = CARD_EXTRACTORS,
) -> PaymentDetails:
    sources = IntentSources.from_intent(intent)
    card = CardDetails()
    for extractor in extractors:
        found = extractor(sources, fetch_payment_method)
        if found is not None:
            card = found
            break
    logger.debug(
        "payments.extractor intent=%s transaction_id=%s brand=%s",
        sources.intent_id, sources.transaction_id, card.brand,
    )
    return PaymentDetails(transaction_id=sources.transaction_id, card=card)

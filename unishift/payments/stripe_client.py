"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Les objets Stripe sont convertis en dict pour que le reste du code (et les tests) manipule des mappings simples.
"""
import stripe
from typing import Any, Dict, List, Optional

from unishift.config import STRIPE_SECRET_KEY

# module unishift.payments.stripe_client
def require_stripe() -> stripe:
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    return stripe

def to_dict(obj: Any) -> Dict[str, Any]:
    """StripeObject -> dict (récursif quand le SDK le permet)."""
    if obj is None:
        return {}
    if type(obj) is dict:
        return obj
    for name in ("to_dict_recursive", "to_dict"):
        fn = getattr(obj, name, None)
        if callable(fn):
            return fn()
    return dict(obj)

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    mode: str,
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, Any],
    customer_email: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - line_items: lignes Stripe (price_data/quantity)
    - mode: "payment"
    - success_url / cancel_url: URLs de redirection
    - metadata: {"parcelId": "...", "amount": "...", "customerEmail": "..."}
    - customer_email: pré-remplit l'email (modifiable par le client)
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    params: Dict[str, Any] = dict(
        line_items=line_items,
        mode=mode,
        success_url=success_url,
        cancel_url=cancel_url,
        metadata=metadata,
        payment_method_types=["card"],
    )
    if customer_email:
        params["customer_email"] = customer_email
    session = stripe.checkout.Session.create(**params)
    return to_dict(session)

def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    Retour: dict session incluant "id", "payment_status", "payment_intent", "amount_total", "metadata", etc.
    """
    require_stripe()
    session = stripe.checkout.Session.retrieve(session_id)
    return to_dict(session)

def retrieve_payment_intent(payment_intent_id: str, expand: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Récupère un PaymentIntent. Par défaut latest_charge est expansé pour exposer
    payment_method_details sans appel supplémentaire.
    """
    require_stripe()
    intent = stripe.PaymentIntent.retrieve(payment_intent_id, expand=expand or ["latest_charge"])
    return to_dict(intent)

def retrieve_payment_method(payment_method_id: str) -> Dict[str, Any]:
    require_stripe()
    return to_dict(stripe.PaymentMethod.retrieve(payment_method_id))

"""
Module 'payments' (feature-first): point d'entrée public.
Réunit client Stripe, extracteur de détails carte, numéros de suivi, repository BD et services.
"""

from .stripe_client import require_stripe, create_session, get_session, retrieve_payment_intent
from .extractor import CardDetails, PaymentDetails, IntentSources, extract_payment_details
from .tracking import generate_tracking_number, is_tracking_number
from .repository import PaymentsRepository, DuplicatePaymentError, get_payments_repository
from .service import create_checkout_session, verify_payment, settle_manually, payment_stats

__all__ = [
    # stripe
    "require_stripe",
    "create_session",
    "get_session",
    "retrieve_payment_intent",
    # extractor
    "CardDetails",
    "PaymentDetails",
    "IntentSources",
    "extract_payment_details",
    # tracking
    "generate_tracking_number",
    "is_tracking_number",
    # repository
    "PaymentsRepository",
    "DuplicatePaymentError",
    "get_payments_repository",
    # services
    "create_checkout_session",
    "verify_payment",
    "settle_manually",
    "payment_stats",
]

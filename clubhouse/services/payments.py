"""
Payment gateway backed by Stripe.

Services only see plain dictionaries so the gateway can be replaced by a fake
in tests; every Stripe failure surfaces as :class:`PaymentError` carrying the
Stripe error code in ``details``.
"""
import logging
import os
from typing import Any, Dict, List, Optional

import stripe

from clubhouse.errors import ExternalServiceError, PaymentError

logger = logging.getLogger("clubhouse.payments")

ALREADY_REFUNDED = "charge_already_refunded"


def _metadata(obj) -> Dict[str, str]:
    meta = getattr(obj, "metadata", None)
    if not meta:
        return {}
    return {key: meta[key] for key in meta.keys()}


def _intent_dict(intent) -> Dict[str, Any]:
    return {
        "id": intent.id,
        "client_secret": getattr(intent, "client_secret", None),
        "amount": intent.amount,
        "currency": intent.currency,
        "status": intent.status,
        "created": getattr(intent, "created", None),
        "metadata": _metadata(intent),
    }


class StripeGateway:
    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or os.getenv("STRIPE_SECRET_KEY")

    def _key(self) -> str:
        if not self.api_key:
            raise ExternalServiceError("Payment provider is not configured")
        return self.api_key

    def _fail(self, exc: "stripe.StripeError", operation: str):
        code = getattr(exc, "code", None)
        message = getattr(exc, "user_message", None) or str(exc)
        logger.warning("stripe_%s_failed: code=%s message=%s", operation, code, message)
        raise PaymentError(message, details={"code": code}) from exc

    def create_payment_intent(
        self,
        *,
        amount: int,
        currency: str,
        metadata: Dict[str, str],
        customer_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "metadata": metadata,
            "automatic_payment_methods": {"enabled": False},
            "payment_method_types": ["card", "link"],
        }
        if customer_id:
            params["customer"] = customer_id
        try:
            intent = stripe.PaymentIntent.create(api_key=self._key(), **params)
        except stripe.StripeError as exc:
            self._fail(exc, "payment_intent_create")
        return _intent_dict(intent)

    def retrieve_payment_intent(self, payment_intent_id: str) -> Dict[str, Any]:
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self._key())
        except stripe.StripeError as exc:
            self._fail(exc, "payment_intent_retrieve")
        return _intent_dict(intent)

    def list_payment_intents(self, *, customer_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        try:
            page = stripe.PaymentIntent.list(customer=customer_id, limit=limit, api_key=self._key())
        except stripe.StripeError as exc:
            self._fail(exc, "payment_intent_list")
        return [_intent_dict(intent) for intent in page.data]

    def create_refund(
        self,
        *,
        payment_intent_id: str,
        amount: Optional[int] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "payment_intent": payment_intent_id,
            "reason": "requested_by_customer",
        }
        if amount is not None:
            params["amount"] = amount
        if metadata:
            params["metadata"] = metadata
        try:
            refund = stripe.Refund.create(api_key=self._key(), **params)
        except stripe.StripeError as exc:
            self._fail(exc, "refund_create")
        return {"id": refund.id, "amount": refund.amount, "status": refund.status}


def is_already_refunded(exc: PaymentError) -> bool:
    return (exc.details or {}).get("code") == ALREADY_REFUNDED


_gateway: Optional[StripeGateway] = None


def get_payment_gateway() -> StripeGateway:
    """Process-wide gateway; routes receive it through a FastAPI dependency."""
    global _gateway
    if _gateway is None:
        _gateway = StripeGateway()
    return _gateway

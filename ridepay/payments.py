"""Drive a Stripe PaymentIntent to a caller-facing outcome.

The driver never persists anything and never retries: a failed gateway call
surfaces as ``GatewayError`` and the caller decides whether to resubmit.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ridepay.errors import ValidationError
from ridepay.stripe_service import PaymentIntent

logger = logging.getLogger(__name__)

SUCCEEDED = "succeeded"
REQUIRES_CONFIRMATION = "requires_confirmation"
ACTION_STATUSES = ("requires_action", "requires_source_action")


class ConfirmPaymentRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    payment_intent_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    customer_id: Optional[str] = None

    def check(self):
        missing = [
            name for name, value in (
                ("paymentIntentId", self.payment_intent_id),
                ("customerId", self.customer_id),
            )
            if not value
        ]
        if missing:
            raise ValidationError("Missing required fields", kind="missing", fields=missing)
        return self


@dataclass
class Succeeded:
    intent: PaymentIntent


@dataclass
class RequiresAction:
    intent: PaymentIntent

    @property
    def client_secret(self):
        return self.intent.client_secret


@dataclass
class Pending:
    intent: PaymentIntent

    @property
    def status(self):
        return self.intent.status


def interpret(intent: PaymentIntent):
    if intent.status == SUCCEEDED:
        return Succeeded(intent)
    if intent.status in ACTION_STATUSES:
        return RequiresAction(intent)
    return Pending(intent)


def confirm_payment(gateway, request: ConfirmPaymentRequest):
    """Attach, retrieve and confirm an intent, then map its status.

    An intent that already reports ``succeeded`` is returned without touching
    the payment method or confirming again.
    """
    request.check()
    logger.info("Confirming payment intent %s", request.payment_intent_id)

    intent = gateway.retrieve_payment_intent(request.payment_intent_id)
    if intent.status != SUCCEEDED:
        if request.payment_method_id:
            gateway.attach_payment_method(request.payment_method_id, request.customer_id)

        if intent.status == REQUIRES_CONFIRMATION:
            intent = gateway.confirm_payment_intent(
                request.payment_intent_id,
                request.payment_method_id or intent.payment_method,
            )

    outcome = interpret(intent)
    logger.info("Payment intent %s: %s", intent.id, type(outcome).__name__)
    return outcome

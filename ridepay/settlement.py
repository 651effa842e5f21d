"""Checkout and settlement: the only place a paid ride gets written.

Stripe and the ride store share no transaction. A ride is written strictly
after Stripe reports ``succeeded``; a store failure after that point is
returned as ``PartialSettlement`` so the caller can send the rider to
support instead of charging or booking twice.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import IntegrityError

from ridepay.errors import StoreError, ValidationError
from ridepay.payments import ConfirmPaymentRequest, Succeeded, confirm_payment
from ridepay.rides import create_ride, find_ride_by_payment_intent, parse_ride
from ridepay.stripe_service import PaymentIntent, to_cents

logger = logging.getLogger(__name__)

PAID = "paid"


class CheckoutRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    amount: Any = None

    def check(self):
        missing = [name for name in ("email", "amount") if not getattr(self, name)]
        if missing:
            raise ValidationError("Missing required fields", kind="missing", fields=missing)
        return self


class CheckoutSession(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    payment_intent_id: str
    payment_intent_client_secret: str
    ephemeral_key_secret: str
    customer_id: str


@dataclass
class Settled:
    intent: PaymentIntent
    ride: object


@dataclass
class PartialSettlement:
    """Money moved, no ride row. Needs manual reconciliation."""

    intent: PaymentIntent
    error: StoreError


def start_checkout(gateway, request: CheckoutRequest) -> CheckoutSession:
    request.check()
    amount = to_cents(request.amount)
    email = request.email.strip()
    name = (request.name or "").strip() or email.split("@")[0]

    customer_id = gateway.find_or_create_customer(name, email)
    ephemeral_key = gateway.create_ephemeral_key(customer_id)
    intent = gateway.create_payment_intent(amount, customer_id)

    logger.info("Checkout %s created for customer %s (%d)", intent.id, customer_id, amount)
    return CheckoutSession(
        payment_intent_id=intent.id,
        payment_intent_client_secret=intent.client_secret,
        ephemeral_key_secret=ephemeral_key,
        customer_id=customer_id,
    )


def _recorded_by_competitor(db, payment_intent_id, error):
    """Return the ride a concurrent finalize inserted first, if the insert lost on the key."""
    if not isinstance(error.__cause__, IntegrityError):
        return None
    try:
        existing = find_ride_by_payment_intent(db, payment_intent_id)
    except StoreError:
        return None
    if existing is not None:
        logger.info("Ride %s was recorded concurrently for %s", existing.id, payment_intent_id)
    return existing


def finalize_booking(gateway, db, confirm_request: ConfirmPaymentRequest, ride_payload):
    """Confirm the payment, then write the ride once it has succeeded.

    Returns ``Settled``, ``PartialSettlement``, or the driver's
    ``RequiresAction`` / ``Pending`` outcome unchanged.
    """
    confirm_request.check()
    if not isinstance(ride_payload, dict):
        raise ValidationError("Invalid ride payload", kind="invalid", fields=["ride"])
    payload = dict(ride_payload, paymentStatus=PAID, paymentIntentId=confirm_request.payment_intent_id)
    ride_data = parse_ride(payload)

    outcome = confirm_payment(gateway, confirm_request)
    if not isinstance(outcome, Succeeded):
        return outcome

    intent = outcome.intent
    try:
        existing = find_ride_by_payment_intent(db, intent.id)
        if existing is not None:
            logger.info("Ride %s already recorded for %s", existing.id, intent.id)
            return Settled(intent=intent, ride=existing)
        ride = create_ride(db, ride_data)
    except StoreError as e:
        existing = _recorded_by_competitor(db, intent.id, e)
        if existing is not None:
            return Settled(intent=intent, ride=existing)
        logger.error("Payment %s succeeded but the ride was not recorded: %s", intent.id, e)
        return PartialSettlement(intent=intent, error=e)

    return Settled(intent=intent, ride=ride)

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import stripe

from ridepay.errors import GatewayError, ValidationError

logger = logging.getLogger(__name__)

AUTOMATIC_PAYMENT_METHODS_CONFIG = {"enabled": True, "allow_redirects": "never"}


@dataclass
class PaymentIntent:
    """The slice of a Stripe PaymentIntent this service reads."""

    id: str
    status: str
    client_secret: str = None
    payment_method: str = None
    amount: int = None
    currency: str = None

    @classmethod
    def from_stripe(cls, obj):
        payment_method = getattr(obj, "payment_method", None)
        # Expanded payment methods come back as objects
        if payment_method is not None and not isinstance(payment_method, str):
            payment_method = getattr(payment_method, "id", None)
        return cls(
            id=obj.id,
            status=obj.status,
            client_secret=getattr(obj, "client_secret", None),
            payment_method=payment_method,
            amount=getattr(obj, "amount", None),
            currency=getattr(obj, "currency", None),
        )

    def as_dict(self):
        return {
            "id": self.id,
            "status": self.status,
            "clientSecret": self.client_secret,
            "paymentMethod": self.payment_method,
            "amount": self.amount,
            "currency": self.currency,
        }


def to_cents(amount) -> int:
    """Convert a major-unit amount to integer cents, rounding half up."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise ValidationError("Invalid amount", kind="invalid", fields=["amount"])
    if not value.is_finite() or value <= 0:
        raise ValidationError("Invalid amount", kind="invalid", fields=["amount"])
    return int((value * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _is_already_attached(exc) -> bool:
    code = getattr(exc, "code", None) or ""
    message = (getattr(exc, "user_message", None) or str(exc)).lower()
    return "already_attached" in code or "already been attached" in message


def _gateway_error(exc) -> GatewayError:
    code = getattr(exc, "code", None)
    message = getattr(exc, "user_message", None) or str(exc)
    return GatewayError(message, code=code, http_status=getattr(exc, "http_status", None))


class StripeGateway:
    """Narrow interface to Stripe. Every Stripe failure becomes a GatewayError."""

    def __init__(self, api_key: str, api_version: str, currency: str = "usd"):
        self.api_key = api_key
        self.api_version = api_version
        self.currency = currency

    def find_or_create_customer(self, name: str, email: str) -> str:
        try:
            existing = stripe.Customer.list(email=email, limit=1, api_key=self.api_key)
            if existing.data:
                return existing.data[0].id
            customer = stripe.Customer.create(name=name, email=email, api_key=self.api_key)
            return customer.id
        except stripe.error.StripeError as e:
            logger.warning("Stripe error looking up customer: %s", e)
            raise _gateway_error(e)

    def create_ephemeral_key(self, customer_id: str) -> str:
        try:
            key = stripe.EphemeralKey.create(
                customer=customer_id,
                stripe_version=self.api_version,
                api_key=self.api_key,
            )
            return key.secret
        except stripe.error.StripeError as e:
            logger.warning("Stripe error creating ephemeral key for %s: %s", customer_id, e)
            raise _gateway_error(e)

    def create_payment_intent(self, amount: int, customer_id: str) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount,
                currency=self.currency,
                customer=customer_id,
                automatic_payment_methods=AUTOMATIC_PAYMENT_METHODS_CONFIG,
                api_key=self.api_key,
            )
            return PaymentIntent.from_stripe(intent)
        except stripe.error.StripeError as e:
            logger.warning("Stripe error creating payment intent: %s", e)
            raise _gateway_error(e)

    def attach_payment_method(self, payment_method_id: str, customer_id: str) -> None:
        try:
            stripe.PaymentMethod.attach(
                payment_method_id, customer=customer_id, api_key=self.api_key
            )
        except stripe.error.StripeError as e:
            if _is_already_attached(e):
                logger.info("Payment method %s already attached to %s", payment_method_id, customer_id)
                return
            logger.warning("Stripe error attaching payment method %s: %s", payment_method_id, e)
            raise _gateway_error(e)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.api_key)
            return PaymentIntent.from_stripe(intent)
        except stripe.error.StripeError as e:
            logger.warning("Stripe error retrieving %s: %s", payment_intent_id, e)
            raise _gateway_error(e)

    def confirm_payment_intent(self, payment_intent_id: str, payment_method_id: str) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.confirm(
                payment_intent_id, payment_method=payment_method_id, api_key=self.api_key
            )
            return PaymentIntent.from_stripe(intent)
        except stripe.error.StripeError as e:
            logger.warning("Stripe error confirming %s: %s", payment_intent_id, e)
            raise _gateway_error(e)

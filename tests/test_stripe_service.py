import pytest
import stripe

from ridepay.errors import GatewayError, ValidationError
from ridepay.stripe_service import StripeGateway, to_cents


@pytest.fixture
def gateway():
    return StripeGateway(api_key="sk_test_123", api_version="2024-06-20")


def test_attach_treats_already_attached_as_success(gateway, mocker):
    mocker.patch(
        "stripe.PaymentMethod.attach",
        side_effect=stripe.error.InvalidRequestError(
            "The payment method you provided has already been attached to a customer.",
            "payment_method",
        ),
    )

    gateway.attach_payment_method("pm_1", "cus_1")


def test_attach_other_errors_become_gateway_errors(gateway, mocker):
    mocker.patch(
        "stripe.PaymentMethod.attach",
        side_effect=stripe.error.CardError("Your card was declined.", "payment_method", "card_declined", http_status=402),
    )

    with pytest.raises(GatewayError) as exc_info:
        gateway.attach_payment_method("pm_1", "cus_1")

    assert exc_info.value.code == "card_declined"
    assert exc_info.value.http_status == 402


def test_retrieve_unknown_intent(gateway, mocker):
    mocker.patch(
        "stripe.PaymentIntent.retrieve",
        side_effect=stripe.error.InvalidRequestError(
            "No such payment_intent: 'pi_missing'", "intent", code="resource_missing", http_status=404
        ),
    )

    with pytest.raises(GatewayError) as exc_info:
        gateway.retrieve_payment_intent("pi_missing")

    assert exc_info.value.code == "resource_missing"
    assert "pi_missing" in exc_info.value.message


def test_retrieve_maps_expanded_payment_method(gateway, mocker, make_intent):
    expanded = mocker.Mock()
    expanded.id = "pm_expanded"
    mocker.patch("stripe.PaymentIntent.retrieve", return_value=make_intent("requires_confirmation", payment_method=expanded))

    intent = gateway.retrieve_payment_intent("pi_1")

    assert intent.payment_method == "pm_expanded"
    assert intent.status == "requires_confirmation"


def test_find_or_create_customer_reuses_existing(gateway, mocker):
    existing = mocker.Mock()
    existing.id = "cus_existing"
    mocker.patch("stripe.Customer.list", return_value=mocker.Mock(data=[existing]))
    mock_create = mocker.patch("stripe.Customer.create")

    assert gateway.find_or_create_customer("Jane", "jane@example.com") == "cus_existing"
    mock_create.assert_not_called()


def test_network_failure_becomes_gateway_error(gateway, mocker):
    mocker.patch("stripe.Customer.list", side_effect=stripe.error.APIConnectionError("Network down"))

    with pytest.raises(GatewayError) as exc_info:
        gateway.find_or_create_customer("Jane", "jane@example.com")

    assert exc_info.value.http_status is None


@pytest.mark.parametrize("amount, cents", [("25", 2500), ("25.50", 2550), (12.345, 1235), (3, 300)])
def test_to_cents(amount, cents):
    assert to_cents(amount) == cents


@pytest.mark.parametrize("amount", ["abc", "0", "-5", "NaN"])
def test_to_cents_rejects_bad_amounts(amount):
    with pytest.raises(ValidationError):
        to_cents(amount)

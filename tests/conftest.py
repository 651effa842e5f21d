import pytest
from fastapi.testclient import TestClient

from ridepay.auth import verify_token
from ridepay.config import Settings
from ridepay.main import create_app
from ridepay.models import Ride


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test_rides.db'}",
        stripe_secret_key="sk_test_123",
        jwt_secret="test-secret",
    )


@pytest.fixture
def fastapi_app(settings):
    app = create_app(settings)
    yield app
    app.state.engine.dispose()


@pytest.fixture
def db(fastapi_app):
    session = fastapi_app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def client(fastapi_app):
    # Bypass auth verification for tests
    fastapi_app.dependency_overrides[verify_token] = lambda: True
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def ride_payload():
    def _payload(**overrides):
        payload = {
            "originAddress": "1 Market St, San Francisco",
            "destinationAddress": "500 Castro St, San Francisco",
            "originLat": 37.7936,
            "originLng": -122.3952,
            "destLat": 37.7609,
            "destLng": -122.435,
            "rideTime": 18,
            "farePrice": 2500,
            "paymentStatus": "paid",
            "driverId": 7,
            "riderId": "user_abc",
        }
        payload.update(overrides)
        return payload
    return _payload


@pytest.fixture
def add_ride(db):
    """Insert a ride row directly, bypassing validation (legacy rows)."""
    def _add(**overrides):
        values = dict(
            driver_id=7,
            origin_address="1 Market St",
            destination_address="500 Castro St",
            origin_lat=37.79,
            origin_lng=-122.39,
            dest_lat=37.76,
            dest_lng=-122.43,
            ride_time=18,
            fare_price=2500,
            payment_status="paid",
        )
        values.update(overrides)
        ride = Ride(**values)
        db.add(ride)
        db.commit()
        db.refresh(ride)
        return ride
    return _add


@pytest.fixture
def make_intent(mocker):
    """Build a stand-in for a Stripe PaymentIntent object."""
    def _make(status, id="pi_1", client_secret="pi_1_secret_abc", payment_method="pm_saved"):
        intent = mocker.Mock()
        intent.id = id
        intent.status = status
        intent.client_secret = client_secret
        intent.payment_method = payment_method
        intent.amount = 2500
        intent.currency = "usd"
        return intent
    return _make

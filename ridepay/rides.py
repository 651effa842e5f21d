import logging
from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as SchemaError
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError

from ridepay.errors import StoreError, ValidationError
from ridepay.models import Ride

logger = logging.getLogger(__name__)

Number = Union[int, float]


class RideCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    origin_address: str = Field(min_length=1)
    destination_address: str = Field(min_length=1)
    origin_lat: Number
    origin_lng: Number
    dest_lat: Number
    dest_lng: Number
    ride_time: int = Field(ge=0)
    fare_price: int = Field(gt=0)
    payment_status: str = Field(min_length=1)
    driver_id: int = Field(gt=0)
    rider_id: str = Field(min_length=1)
    payment_intent_id: Optional[str] = None

    @field_validator("origin_lat", "origin_lng", "dest_lat", "dest_lng", "ride_time", "fare_price", "driver_id", mode="before")
    @classmethod
    def reject_booleans(cls, value):
        if isinstance(value, bool):
            raise ValueError("must be a number, not a boolean")
        return value


class RideOut(BaseModel):
    """Stored rows as returned to callers. Legacy rows are not re-validated."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    rider_id: Optional[str] = None
    driver_id: Optional[int] = None
    origin_address: Optional[str] = None
    destination_address: Optional[str] = None
    origin_lat: Optional[float] = None
    origin_lng: Optional[float] = None
    dest_lat: Optional[float] = None
    dest_lng: Optional[float] = None
    ride_time: Optional[int] = None
    fare_price: Optional[int] = None
    payment_status: Optional[str] = None
    payment_intent_id: Optional[str] = None
    created_at: Optional[datetime] = None


REQUIRED_FIELDS = [
    to_camel(name) for name, field in RideCreate.model_fields.items() if field.is_required()
]


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_ride(payload) -> RideCreate:
    """Validate a wire payload. Absent, null and blank fields count as missing."""
    if isinstance(payload, RideCreate):
        return payload
    if not isinstance(payload, dict):
        raise ValidationError("Invalid ride payload", kind="invalid")

    missing = [name for name in REQUIRED_FIELDS if _blank(payload.get(name))]
    if missing:
        raise ValidationError("Missing required fields", kind="missing", fields=missing)

    try:
        ride = RideCreate.model_validate(payload)
    except SchemaError as e:
        fields = list(dict.fromkeys(str(err["loc"][0]) for err in e.errors() if err["loc"]))
        raise ValidationError("Invalid ride fields", kind="invalid", fields=fields)

    ride.payment_intent_id = ride.payment_intent_id or None
    return ride


def serialize(ride: Ride) -> dict:
    return RideOut.model_validate(ride).model_dump(by_alias=True, mode="json")


def create_ride(db, payload) -> Ride:
    """Insert exactly one ride row. Validation happens before the session is touched."""
    data = parse_ride(payload)

    ride = Ride(**data.model_dump())
    try:
        db.add(ride)
        db.commit()
        db.refresh(ride)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to insert ride for rider %s: %s", data.rider_id, e)
        raise StoreError(str(e)) from e

    logger.info("Ride %s created for rider %s", ride.id, ride.rider_id)
    return ride


def find_ride_by_payment_intent(db, payment_intent_id: str):
    try:
        return db.query(Ride).filter_by(payment_intent_id=payment_intent_id).first()
    except SQLAlchemyError as e:
        raise StoreError(str(e)) from e


def list_rides(db, rider_id: str):
    if _blank(rider_id):
        raise ValidationError("Missing required fields", kind="missing", fields=["riderId"])
    try:
        return (
            db.query(Ride)
            .filter(Ride.rider_id == rider_id)
            .order_by(Ride.created_at.desc(), Ride.id.desc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.error("Failed to list rides for rider %s: %s", rider_id, e)
        raise StoreError(str(e)) from e

from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, Float, Integer, String
from ridepay.database import Base


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Ride(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rider_id = Column(String, index=True)              # null only on legacy rows, see repair
    driver_id = Column(Integer, nullable=False)
    origin_address = Column(String, nullable=False)
    destination_address = Column(String, nullable=False)
    origin_lat = Column(Float, nullable=False)
    origin_lng = Column(Float, nullable=False)
    dest_lat = Column(Float, nullable=False)
    dest_lng = Column(Float, nullable=False)
    ride_time = Column(Integer, nullable=False)        # minutes
    fare_price = Column(Integer, nullable=False)       # minor units
    payment_status = Column(String, nullable=False)
    payment_intent_id = Column(String, unique=True, nullable=True)  # Stripe PaymentIntent ID
    created_at = Column(DateTime, nullable=False, default=utcnow)

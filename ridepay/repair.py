"""Backfill rides that were written before rides carried a rider.

The sweep is global: every rider-less row is bound to the calling rider,
which is only correct while a single unresolved rider exists.
"""
import logging

from sqlalchemy import inspect, or_, text
from sqlalchemy.exc import SQLAlchemyError

from ridepay.errors import StoreError, ValidationError
from ridepay.models import Ride

logger = logging.getLogger(__name__)


def ensure_rider_column(engine) -> bool:
    """Add ``rides.rider_id`` when an older schema lacks it. Returns True if added."""
    try:
        columns = {column["name"] for column in inspect(engine).get_columns(Ride.__tablename__)}
        if "rider_id" in columns:
            return False
        with engine.begin() as conn:
            conn.execute(text(f"ALTER TABLE {Ride.__tablename__} ADD COLUMN rider_id VARCHAR"))
    except SQLAlchemyError as e:
        logger.error("Failed to check or add rides.rider_id: %s", e)
        raise StoreError(str(e)) from e

    logger.info("Added rider_id column to %s", Ride.__tablename__)
    return True


def repair_rider_association(engine, db, rider_id):
    if not isinstance(rider_id, str) or not rider_id.strip():
        raise ValidationError("Missing riderId", kind="missing", fields=["riderId"])

    ensure_rider_column(engine)

    try:
        rides = (
            db.query(Ride)
            .filter(or_(Ride.rider_id.is_(None), Ride.rider_id == ""))
            .order_by(Ride.id)
            .all()
        )
        for ride in rides:
            ride.rider_id = rider_id
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to backfill rider %s: %s", rider_id, e)
        raise StoreError(str(e)) from e

    logger.info("Updated %d rides with rider_id %s", len(rides), rider_id)
    return len(rides), rides

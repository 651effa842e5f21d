from typing import Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ridepay.auth import verify_token
from ridepay.payments import ConfirmPaymentRequest, Pending, RequiresAction, Succeeded, confirm_payment
from ridepay.repair import repair_rider_association
from ridepay.rides import create_ride, list_rides, serialize
from ridepay.settlement import (
    CheckoutRequest,
    PartialSettlement,
    Settled,
    finalize_booking,
    start_checkout,
)

router = APIRouter(dependencies=[Depends(verify_token)])


class BookRideRequest(BaseModel):
    payment: ConfirmPaymentRequest = Field(default_factory=ConfirmPaymentRequest)
    ride: dict = Field(default_factory=dict)


class RepairRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    rider_id: Optional[str] = None


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_gateway(request: Request):
    return request.app.state.gateway


def get_engine(request: Request):
    return request.app.state.engine


def payment_body(outcome):
    result = outcome.intent.as_dict()
    if isinstance(outcome, Succeeded):
        return {"success": True, "message": "Payment successful", "result": result}
    if isinstance(outcome, RequiresAction):
        return {
            "requiresAction": True,
            "paymentIntentClientSecret": outcome.client_secret,
            "result": result,
        }
    if isinstance(outcome, Pending):
        return {
            "success": False,
            "requiresAction": False,
            "message": f"Payment status: {outcome.status}",
            "result": result,
        }
    raise TypeError(f"Unexpected payment outcome {outcome!r}")


@router.post("/checkout")
def checkout(request: CheckoutRequest, gateway=Depends(get_gateway)):
    session = start_checkout(gateway, request)
    return session.model_dump(by_alias=True)


@router.post("/payments/confirm")
def confirm(request: ConfirmPaymentRequest, gateway=Depends(get_gateway)):
    return payment_body(confirm_payment(gateway, request))


@router.post("/rides", status_code=201)
def create_ride_api(payload: dict = Body(...), db=Depends(get_db)):
    ride = create_ride(db, payload)
    return {"data": serialize(ride)}


@router.post("/rides/book")
def book_ride(request: BookRideRequest, gateway=Depends(get_gateway), db=Depends(get_db)):
    outcome = finalize_booking(gateway, db, request.payment, request.ride)

    if isinstance(outcome, Settled):
        body = payment_body(Succeeded(outcome.intent))
        body["data"] = serialize(outcome.ride)
        return JSONResponse(status_code=201, content=body)

    if isinstance(outcome, PartialSettlement):
        return JSONResponse(
            status_code=500,
            content={
                "error": "Payment confirmed, booking failed. Contact support.",
                "partialSettlement": True,
                "paymentIntentId": outcome.intent.id,
                "details": str(outcome.error),
            },
        )

    return payment_body(outcome)


@router.post("/rides/repair")
def repair(request: RepairRequest, engine=Depends(get_engine), db=Depends(get_db)):
    count, rides = repair_rider_association(engine, db, request.rider_id)
    return {
        "message": f"Updated {count} rides with rider_id {request.rider_id}",
        "data": [serialize(ride) for ride in rides],
    }


@router.get("/rides/{rider_id}")
def rides_for_rider(rider_id: str, db=Depends(get_db)):
    return {"data": [serialize(ride) for ride in list_rides(db, rider_id)]}

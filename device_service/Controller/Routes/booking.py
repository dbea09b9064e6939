# device_service/Controller/Routes/booking.py

"""
Device Booking REST API

Endpoints:
- POST /book     Book a device by name and/or id
- POST /return   Return a device by name and/or id

Request body:
    {
        "person": "Andrej",
        "deviceName": "iPhone 14",   // optional
        "deviceId": 7                // optional
    }

At least one of deviceName / deviceId is required. When both are given the
name is handled first, then the id, each in its own transaction: a failure
on the id step does not undo the booking made by name.

Usage:
    app.include_router(booking.router, prefix="/api/v1/booking", tags=["booking"])
"""

from fastapi import APIRouter, Depends, Response

from device_service.Controller.deps import get_registry
from device_service.Core.errors import RequestMustHaveEitherDeviceIdOrName
from device_service.Schemas import device as device_schema
from device_service.Services.device_registry import DeviceRegistry

router = APIRouter()


@router.post("/book", status_code=204)
def book_device(
    request: device_schema.Booking_request,
    registry: DeviceRegistry = Depends(get_registry),
):
    """
    Book a device.

    Raises:
        400 Booking:RequestMustHaveEitherDeviceIdOrName: no target given
        404 Device:DeviceIdNotFound: unknown deviceId
        409 Booking:DeviceNotAvailable: target already booked / none available
    """
    if not request.has_target:
        raise RequestMustHaveEitherDeviceIdOrName()

    if request.deviceName is not None:
        registry.book_by_name(request.person, request.deviceName)

    if request.deviceId is not None:
        registry.book_by_id(request.person, request.deviceId)

    return Response(status_code=204)


@router.post("/return", status_code=204)
def return_device(
    request: device_schema.Booking_request,
    registry: DeviceRegistry = Depends(get_registry),
):
    """
    Return a device booked by `person`.

    Raises:
        400 Booking:RequestMustHaveEitherDeviceIdOrName: no target given
        400 Booking:NoPersonWithGivenBookedDevice: person has not booked the target
    """
    if not request.has_target:
        raise RequestMustHaveEitherDeviceIdOrName()

    if request.deviceName is not None:
        registry.return_by_name(request.person, request.deviceName)

    if request.deviceId is not None:
        registry.return_by_id(request.person, request.deviceId)

    return Response(status_code=204)

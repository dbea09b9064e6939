# device_service/Controller/Routes/management.py

"""
Device Management REST API

Endpoints:
- POST   /devices          Register a device
- DELETE /devices/{id}     Delete one device (idempotent)
- DELETE /devices          Delete every device

Usage:
    app.include_router(management.router, prefix="/api/v1/management", tags=["management"])
"""

from fastapi import APIRouter, Depends, Response

from device_service.Controller.deps import get_registry
from device_service.Schemas import device as device_schema
from device_service.Services.device_registry import DeviceRegistry

router = APIRouter()


@router.post("/devices", response_model=device_schema.Device_created, status_code=201)
def create_device(
    device: device_schema.Device_create,
    registry: DeviceRegistry = Depends(get_registry),
):
    """
    Register a new, available device.

    Names are not unique: registering "iPhone 14" twice creates two devices.

    Example Request:
        POST /api/v1/management/devices
        {"name": "iPhone 14"}

    Returns:
        {"id": 12}
    """
    return {"id": registry.register(device.name)}


@router.delete("/devices/{device_id}", status_code=204)
def delete_device(device_id: int, registry: DeviceRegistry = Depends(get_registry)):
    """
    Delete a device (hard delete). Deleting an unknown id succeeds too.
    """
    registry.delete(device_id)
    return Response(status_code=204)


@router.delete("/devices", status_code=204)
def delete_all_devices(registry: DeviceRegistry = Depends(get_registry)):
    """
    Delete every device, booked or not.
    """
    registry.delete_all()
    return Response(status_code=204)

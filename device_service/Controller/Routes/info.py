# device_service/Controller/Routes/info.py

"""
Device Info REST API

Read-only endpoints. Every device is returned enriched with its network
capabilities (technology, 2G/3G/4G bands).

Endpoints:
- GET /devices               All devices
- GET /devices/available     Devices that can be booked
- GET /devices/{id}          One device
- GET /devices/name/{name}   Devices whose name contains {name} (case-sensitive)

Usage:
    app.include_router(info.router, prefix="/api/v1/info", tags=["info"])
"""

from typing import List

from fastapi import APIRouter, Depends

from device_service.Controller.deps import get_registry, get_resolver
from device_service.Core.errors import DeviceNameNotFound
from device_service.Schemas import device as device_schema
from device_service.Services.device_registry import DeviceRegistry
from device_service.Services.enrichment import EnrichmentResolver

router = APIRouter()


@router.get("/devices", response_model=List[device_schema.Device_get])
def get_all_devices(
    registry: DeviceRegistry = Depends(get_registry),
    resolver: EnrichmentResolver = Depends(get_resolver),
):
    """
    List every registered device.

    Example Response:
        [
            {
                "id": 1,
                "name": "Samsung Galaxy S9",
                "available": false,
                "lastBookedPersonName": "Andrej",
                "lastBookedTime": "2024-03-01T10:15:30.123456+04:00",
                "technology": "GSM / CDMA / HSPA / EVDO / LTE",
                "twoGBands": "GSM 850 / 900 / 1800 / 1900 - ...",
                "threeGBands": "HSDPA 850 / 900 / 1700(AWS) / 1900 / 2100 - ...",
                "fourGBands": "LTE band 1(2100), 2(1900), ..."
            }
        ]
    """
    return resolver.enrich_all(registry.list_all())


# Declared before /devices/{device_id} so "available" is not parsed as an id
@router.get("/devices/available", response_model=List[device_schema.Device_get])
def get_all_available_devices(
    registry: DeviceRegistry = Depends(get_registry),
    resolver: EnrichmentResolver = Depends(get_resolver),
):
    """
    List devices that are not currently booked.
    """
    return resolver.enrich_all(registry.list_available())


@router.get("/devices/name/{name}", response_model=List[device_schema.Device_get])
def get_devices_by_name(
    name: str,
    registry: DeviceRegistry = Depends(get_registry),
    resolver: EnrichmentResolver = Depends(get_resolver),
):
    """
    List devices whose name contains `name`.

    Example Request:
        GET /api/v1/info/devices/name/iPhone

    Raises:
        404 Device:DeviceNameNotFound: nothing matches
    """
    devices = registry.list_by_name(name)

    if not devices:
        raise DeviceNameNotFound(name)

    return resolver.enrich_all(devices)


@router.get("/devices/{device_id}", response_model=device_schema.Device_get)
def get_device_by_id(
    device_id: int,
    registry: DeviceRegistry = Depends(get_registry),
    resolver: EnrichmentResolver = Depends(get_resolver),
):
    """
    Get one device.

    Raises:
        404 Device:DeviceIdNotFound: unknown id
    """
    return resolver.enrich(registry.get_by_id(device_id))

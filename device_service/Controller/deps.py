#device_service/Controller/deps.py

from fastapi import Request

from device_service.Services.device_registry import DeviceRegistry
from device_service.Services.enrichment import EnrichmentResolver


def get_registry(request: Request) -> DeviceRegistry:
    return request.app.state.registry


def get_resolver(request: Request) -> EnrichmentResolver:
    return request.app.state.resolver

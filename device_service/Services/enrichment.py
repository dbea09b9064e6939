# device_service/Services/enrichment.py

"""
Enrichment of registry rows with network capabilities.

Lookup order for a device name:
    1. Remote specs client, when one is configured and returns a record
    2. Reference dataset (exact name)
    3. "INFO UNAVAILABLE" in every capability field

Enrichment never fails a request: anything going wrong on the remote side
falls through to the dataset.
"""

from typing import Iterable, List, Optional

from device_service.Core import log_ws
from device_service.Schemas.device import Device_get, Device_record, Network_details
from device_service.Services.gsm_dataset import GsmArenaDataset
from device_service.Services.rapid_api import RapidApiClient


class EnrichmentResolver:
    """
    Args:
        dataset: Reference dataset loaded at startup
        remote_client: RapidAPI client, or None when no API key is configured
    """

    def __init__(self, dataset: GsmArenaDataset, remote_client: Optional[RapidApiClient] = None):
        self.dataset = dataset
        self.remote_client = remote_client

    def lookup(self, device_name: str) -> Network_details:
        if self.remote_client is not None:
            try:
                remote = self.remote_client.lookup(device_name)
            except Exception as e:
                log_ws.log_from_thread(f"[ENRICH] Remote lookup for '{device_name}' failed: {e}", "error")
                remote = None

            if remote is not None:
                return remote

        local = self.dataset.lookup(device_name)
        if local is not None:
            return local

        return Network_details.unavailable()

    def enrich(self, device: Device_record) -> Device_get:
        details = self.lookup(device.name)
        return Device_get(**device.model_dump(), **details.model_dump())

    def enrich_all(self, devices: Iterable[Device_record]) -> List[Device_get]:
        return [self.enrich(device) for device in devices]

# device_service/Services/rapid_api.py

"""
Remote specs client for the Mobile Phone Specs Database on RapidAPI.

https://rapidapi.com/makingdatameaningful/api/mobile-phone-specs-database

A device name is split at its first run of whitespace into brand and model:

    "Samsung Galaxy S9" -> GET .../Samsung/Galaxy%20S9

Names without whitespace ("Nokia") cannot be resolved and return None
without contacting the API. Every failure (timeout, connection error, HTTP
error status, malformed JSON, missing gsmNetworkDetails) is logged and
reported as None: callers cannot tell a failure from an unknown device.

Results, including None, are memoized per exact device name in a
CacheManager; concurrent lookups of one name share a single request.
"""

import re
from typing import Any, Optional
from urllib.parse import quote

import requests

from device_service.Core import log_ws
from device_service.Schemas.device import Network_details
from device_service.Services.cache_manager import CacheManager

RAPID_API_HOST = "mobile-phone-specs-database.p.rapidapi.com"
SPECS_URL_TEMPLATE = (
    f"https://{RAPID_API_HOST}/gsm/get-specifications-by-brandname-modelname/{{brand}}/{{model}}"
)

_WHITESPACE = re.compile(r"\s+")


def split_brand_model(device_name: str) -> Optional[tuple]:
    """
    Split a device name into (brand, model), or None if it has no model part.

    Example:
        split_brand_model("Apple iPhone 14 Pro")  # ("Apple", "iPhone 14 Pro")
        split_brand_model("Nokia")                # None
    """
    words = _WHITESPACE.split(device_name.strip(), maxsplit=1)
    if len(words) < 2 or not words[0] or not words[1]:
        return None
    return words[0], words[1]


def build_specs_url(brand: str, model: str) -> str:
    return SPECS_URL_TEMPLATE.format(brand=quote(brand, safe=""), model=quote(model, safe=""))


class RapidApiClient:
    """
    Looks up network capabilities of a device on RapidAPI.

    Args:
        api_key: RapidAPI key (sent as X-RapidAPI-Key, never logged)
        session: Shared requests.Session; one is created (and owned) if omitted
        cache: Memoizing cache; a 1000-entry CacheManager if omitted
        timeout: Connect and read timeout in seconds
        miss_ttl: Seconds a None result stays cached (None = until evicted)
    """

    def __init__(
        self,
        api_key: str,
        session: Optional[requests.Session] = None,
        cache: Optional[CacheManager] = None,
        timeout: float = 10.0,
        miss_ttl: Optional[float] = 300,
    ):
        if not api_key:
            raise ValueError("API key must be non-empty")

        self._api_key = api_key
        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()
        self.cache = cache if cache is not None else CacheManager(max_size=1000)
        self.timeout = timeout
        self.miss_ttl = miss_ttl

    def lookup(self, device_name: str) -> Optional[Network_details]:
        """Network details for the device, or None if unknown or unreachable."""
        return self.cache.get_or_load(device_name, self._perform_request, ttl=self._ttl_for)

    def close(self) -> None:
        if self._owns_session:
            self.session.close()

    # ==========================================================
    # Internals
    # ==========================================================

    def _ttl_for(self, result: Optional[Network_details]) -> Optional[float]:
        return None if result is not None else self.miss_ttl

    def _perform_request(self, device_name: str) -> Optional[Network_details]:
        brand_model = split_brand_model(device_name)
        if brand_model is None:
            return None

        url = build_specs_url(*brand_model)
        headers = {
            "X-RapidAPI-Key": self._api_key,
            "X-RapidAPI-Host": RAPID_API_HOST,
        }

        try:
            response = self.session.get(url, headers=headers, timeout=(self.timeout, self.timeout))
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            log_ws.log_from_thread(f"[RAPIDAPI] Request for '{device_name}' failed: {e}", "error")
            return None
        except ValueError as e:
            log_ws.log_from_thread(f"[RAPIDAPI] Invalid JSON for '{device_name}': {e}", "error")
            return None

        return parse_network_details(payload, device_name)


def parse_network_details(payload: Any, device_name: str = "") -> Optional[Network_details]:
    """
    Extract Network_details from a specifications response body.

    Missing or null fields become "", other non-string values are stringified.
    """
    if not isinstance(payload, dict):
        log_ws.log_from_thread(f"[RAPIDAPI] Unexpected response for '{device_name}': not a JSON object", "error")
        return None

    details = payload.get("gsmNetworkDetails")
    if details is None:
        return None
    if not isinstance(details, dict):
        log_ws.log_from_thread(f"[RAPIDAPI] Unexpected gsmNetworkDetails for '{device_name}'", "error")
        return None

    return Network_details(
        technology=_string_field(details, "networkTechnology"),
        twoGBands=_string_field(details, "network2GBands"),
        threeGBands=_string_field(details, "network3GBands"),
        fourGBands=_string_field(details, "network4GBands"),
    )


def _string_field(details: dict, key: str) -> str:
    value = details.get(key)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)

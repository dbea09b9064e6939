"""Tests for the EnrichmentResolver.

These tests verify that:
1. The remote client wins when it knows the device
2. The reference dataset is used when the remote client does not
3. Unknown devices get "INFO UNAVAILABLE" everywhere
4. A failing remote client looks exactly like an absent one
5. Concurrent lookups of one device trigger a single remote request
"""

import threading
import time
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from device_service.Schemas.device import INFO_UNAVAILABLE, Device_record, Network_details
from device_service.Services.enrichment import EnrichmentResolver
from device_service.Services.gsm_dataset import GsmArenaDataset
from device_service.Services.rapid_api import RapidApiClient

LOCAL = Network_details(technology="GSM / LTE", twoGBands="GSM 900", threeGBands="HSDPA 2100", fourGBands="LTE 20")
REMOTE = Network_details(technology="GSM / LTE / 5G", twoGBands="GSM 850", threeGBands="HSDPA 850", fourGBands="LTE 7")


@pytest.fixture
def dataset():
    return GsmArenaDataset({"Samsung Galaxy S9": LOCAL})


@pytest.fixture
def remote():
    return MagicMock(spec=RapidApiClient)


class TestLookupOrder:
    """Tests for source precedence."""

    def test_without_remote_client_uses_dataset(self, dataset):
        resolver = EnrichmentResolver(dataset)

        assert resolver.lookup("Samsung Galaxy S9") == LOCAL

    def test_remote_result_wins(self, dataset, remote):
        remote.lookup.return_value = REMOTE
        resolver = EnrichmentResolver(dataset, remote)

        assert resolver.lookup("Samsung Galaxy S9") == REMOTE

    def test_remote_absent_falls_back_to_dataset(self, dataset, remote):
        remote.lookup.return_value = None
        resolver = EnrichmentResolver(dataset, remote)

        assert resolver.lookup("Samsung Galaxy S9") == LOCAL
        remote.lookup.assert_called_once_with("Samsung Galaxy S9")

    def test_unknown_everywhere(self, dataset, remote):
        remote.lookup.return_value = None
        resolver = EnrichmentResolver(dataset, remote)

        details = resolver.lookup("Nokia")

        assert details.technology == INFO_UNAVAILABLE
        assert details.twoGBands == INFO_UNAVAILABLE
        assert details.threeGBands == INFO_UNAVAILABLE
        assert details.fourGBands == INFO_UNAVAILABLE

    def test_remote_failure_is_indistinguishable_from_absence(self, dataset, remote):
        absent = MagicMock(spec=RapidApiClient)
        absent.lookup.return_value = None
        remote.lookup.side_effect = RuntimeError("unexpected")

        failing_resolver = EnrichmentResolver(dataset, remote)
        absent_resolver = EnrichmentResolver(dataset, absent)

        for name in ["Samsung Galaxy S9", "Nokia"]:
            assert failing_resolver.lookup(name) == absent_resolver.lookup(name)


class TestEnrich:
    """Tests for building Device_get responses."""

    def test_enrich_keeps_registry_fields(self, dataset):
        booked_at = datetime(2024, 3, 1, 10, 15, 30, 123456, tzinfo=timezone(timedelta(hours=4)))
        record = Device_record(
            id=7,
            name="Samsung Galaxy S9",
            available=False,
            lastBookedPersonName="Andrej",
            lastBookedTime=booked_at,
        )

        device = EnrichmentResolver(dataset).enrich(record)

        assert device.id == 7
        assert device.available is False
        assert device.lastBookedPersonName == "Andrej"
        assert device.lastBookedTime == booked_at
        assert device.technology == "GSM / LTE"
        assert device.fourGBands == "LTE 20"

    def test_enrich_all_preserves_order(self, dataset):
        records = [
            Device_record(id=1, name="Nokia", available=True),
            Device_record(id=2, name="Samsung Galaxy S9", available=True),
        ]

        devices = EnrichmentResolver(dataset).enrich_all(records)

        assert [d.id for d in devices] == [1, 2]
        assert devices[0].technology == INFO_UNAVAILABLE
        assert devices[1].technology == "GSM / LTE"


class TestConcurrentLookup:
    """Tests for many readers enriching the same device at once."""

    def test_concurrent_lookups_share_one_remote_request(self, dataset):
        def slow_get(url, **kwargs):
            time.sleep(0.2)
            response = MagicMock()
            response.json.return_value = {
                "gsmNetworkDetails": {
                    "networkTechnology": REMOTE.technology,
                    "network2GBands": REMOTE.twoGBands,
                    "network3GBands": REMOTE.threeGBands,
                    "network4GBands": REMOTE.fourGBands,
                }
            }
            return response

        session = MagicMock(spec=requests.Session)
        session.get.side_effect = slow_get
        resolver = EnrichmentResolver(dataset, RapidApiClient("secret-key", session=session))

        workers = 16
        barrier = threading.Barrier(workers)
        results = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            details = resolver.lookup("Samsung Galaxy S9")
            with results_lock:
                results.append(details)

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert session.get.call_count == 1
        assert len(results) == workers
        assert all(details == REMOTE for details in results)

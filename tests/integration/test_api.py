"""End-to-end tests for the device booking API.

The application runs its real lifespan against a SQLite file in tmp_path
and the sample GSMArena CSV, without a RapidAPI key.
"""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from device_service.Core.config import Configuration, Settings
from device_service.main import create_app

MANAGEMENT = "/api/v1/management"
INFO = "/api/v1/info"
BOOKING = "/api/v1/booking"


@pytest.fixture
def app_settings(database_url, sample_csv) -> Settings:
    return Settings(
        DATABASE_URL=database_url,
        GSM_DATASET_CSV=str(sample_csv),
        BOOKING_TIMEZONE="+04:00",
    )


@pytest.fixture
def client(app_settings, frozen_clock):
    """Test client with the lifespan running (database open, dataset loaded)."""
    app = create_app(
        configuration=Configuration(host="127.0.0.1", port=8345),
        app_settings=app_settings,
        clock=frozen_clock,
    )
    with TestClient(app) as test_client:
        yield test_client


def create_device(client, name: str) -> int:
    response = client.post(f"{MANAGEMENT}/devices", json={"name": name})
    assert response.status_code == 201
    return response.json()["id"]


def book(client, person: str, **target):
    return client.post(f"{BOOKING}/book", json={"person": person, **target})


def give_back(client, person: str, **target):
    return client.post(f"{BOOKING}/return", json={"person": person, **target})


class TestStartup:
    """Tests for the application lifespan."""

    def test_first_startup_devices_registered(self, app_settings):
        app = create_app(
            configuration=Configuration(
                host="127.0.0.1",
                port=8345,
                first_startup_register_devices=["Samsung Galaxy S9", "Nokia"],
            ),
            app_settings=app_settings,
        )

        with TestClient(app) as client:
            names = [d["name"] for d in client.get(f"{INFO}/devices").json()]

        assert names == ["Samsung Galaxy S9", "Nokia"]

    def test_restart_keeps_devices(self, app_settings):
        conf = Configuration(host="127.0.0.1", port=8345, first_startup_register_devices=["Nokia"])

        with TestClient(create_app(configuration=conf, app_settings=app_settings)) as client:
            create_device(client, "Pixel 8")

        with TestClient(create_app(configuration=conf, app_settings=app_settings)) as client:
            names = [d["name"] for d in client.get(f"{INFO}/devices").json()]

        assert names == ["Nokia", "Pixel 8"]

    def test_configuration_loaded_from_file(self, tmp_path, database_url, sample_csv):
        conf_path = tmp_path / "device-service.yml"
        conf_path.write_text("host: 127.0.0.1\nport: 8345\nfirstStartupRegisterDevices: [iPhone X]\n")
        app_settings = Settings(
            CONFIG_PATH=str(conf_path),
            DATABASE_URL=database_url,
            GSM_DATASET_CSV=str(sample_csv),
        )

        with TestClient(create_app(app_settings=app_settings)) as client:
            devices = client.get(f"{INFO}/devices").json()

        assert [d["name"] for d in devices] == ["iPhone X"]

    def test_remote_client_uses_configured_cache_size(self, database_url, sample_csv):
        app_settings = Settings(
            DATABASE_URL=database_url,
            GSM_DATASET_CSV=str(sample_csv),
            SPECS_CACHE_MAX_SIZE=5,
        )
        app = create_app(
            configuration=Configuration(host="127.0.0.1", port=8345, api_key="secret-key"),
            app_settings=app_settings,
        )

        with TestClient(app):
            remote_client = app.state.resolver.remote_client
            assert remote_client.cache.max_size == 5
            assert len(remote_client.cache) == 0


class TestServiceEndpoints:
    """Tests for /health and /api."""

    def test_health(self, client):
        create_device(client, "Nokia")

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "ok", "devices": 1, "available": 1}

    def test_api_info(self, client):
        body = client.get("/api").json()

        assert body["status"] == "online"
        assert body["features"]["remote_specs_lookup"] is False
        assert body["features"]["reference_dataset_devices"] == 3


class TestManagement:
    """Tests for the management endpoints."""

    def test_create_returns_id(self, client):
        response = client.post(f"{MANAGEMENT}/devices", json={"name": "iPhone 14"})

        assert response.status_code == 201
        assert isinstance(response.json()["id"], int)

    @pytest.mark.parametrize("name", ["", "  "])
    def test_create_with_blank_name_rejected(self, client, name):
        response = client.post(f"{MANAGEMENT}/devices", json={"name": name})

        assert response.status_code == 400
        assert response.json()["errorName"] == "Device:InvalidDeviceName"
        assert client.get(f"{INFO}/devices").json() == []

    def test_delete_is_idempotent(self, client):
        device_id = create_device(client, "Nokia")

        assert client.delete(f"{MANAGEMENT}/devices/{device_id}").status_code == 204
        assert client.delete(f"{MANAGEMENT}/devices/{device_id}").status_code == 204

    def test_delete_all(self, client):
        create_device(client, "Nokia")
        book(client, "Andrej", deviceId=create_device(client, "iPhone 14"))

        assert client.delete(f"{MANAGEMENT}/devices").status_code == 204
        assert client.get(f"{INFO}/devices").json() == []


class TestInfo:
    """Tests for the info endpoints."""

    def test_get_by_id(self, client):
        device_id = create_device(client, "Samsung Galaxy S9")

        body = client.get(f"{INFO}/devices/{device_id}").json()

        assert body["id"] == device_id
        assert body["available"] is True
        assert body["lastBookedPersonName"] is None
        assert body["lastBookedTime"] is None
        assert body["technology"] == "GSM / CDMA / HSPA / EVDO / LTE"

    def test_unknown_id_error_body(self, client):
        response = client.get(f"{INFO}/devices/999")

        assert response.status_code == 404
        body = response.json()
        assert body["errorCode"] == "NOT_FOUND"
        assert body["errorName"] == "Device:DeviceIdNotFound"
        assert body["parameters"] == {"deviceId": 999}
        assert body["errorInstanceId"]

    def test_available_route_is_not_an_id(self, client):
        response = client.get(f"{INFO}/devices/available")

        assert response.status_code == 200
        assert response.json() == []

    def test_unknown_name(self, client):
        response = client.get(f"{INFO}/devices/name/doesNotExist")

        assert response.status_code == 404
        assert response.json()["errorName"] == "Device:DeviceNameNotFound"


class TestBooking:
    """Tests for the booking endpoints."""

    def test_book_and_return_by_id(self, client):
        device_id = create_device(client, "iPhone 14")

        assert book(client, "Andrej", deviceId=device_id).status_code == 204
        assert client.get(f"{INFO}/devices/{device_id}").json()["available"] is False

        assert give_back(client, "Andrej", deviceId=device_id).status_code == 204
        body = client.get(f"{INFO}/devices/{device_id}").json()
        assert body["available"] is True
        assert body["lastBookedPersonName"] == "Andrej"
        assert body["lastBookedTime"] is not None

    def test_book_unknown_id(self, client):
        response = book(client, "Andrej", deviceId=404)

        assert response.status_code == 404
        assert response.json()["errorName"] == "Device:DeviceIdNotFound"

    def test_return_by_another_person(self, client):
        device_id = create_device(client, "iPhone 14")
        book(client, "Andrej", deviceId=device_id)

        response = give_back(client, "Peter", deviceId=device_id)

        assert response.status_code == 400
        assert response.json()["errorName"] == "Booking:NoPersonWithGivenBookedDevice"

    def test_return_without_target(self, client):
        response = give_back(client, "Andrej")

        assert response.status_code == 400
        assert response.json()["errorName"] == "Booking:RequestMustHaveEitherDeviceIdOrName"

    def test_missing_person_rejected(self, client):
        response = client.post(f"{BOOKING}/book", json={"deviceId": 1})

        assert response.status_code == 422

    def test_both_targets_name_first_then_id(self, client):
        """A failing id step does not undo the booking made by name."""
        by_name = create_device(client, "iPhone 14")
        by_id = create_device(client, "Pixel 8")
        book(client, "Peter", deviceId=by_id)

        response = book(client, "Andrej", deviceName="iPhone 14", deviceId=by_id)

        assert response.status_code == 409
        assert client.get(f"{INFO}/devices/{by_name}").json()["lastBookedPersonName"] == "Andrej"
        assert client.get(f"{INFO}/devices/{by_id}").json()["lastBookedPersonName"] == "Peter"

    def test_both_targets_succeed(self, client):
        by_name = create_device(client, "iPhone 14")
        by_id = create_device(client, "Pixel 8")

        assert book(client, "Andrej", deviceName="iPhone 14", deviceId=by_id).status_code == 204
        assert give_back(client, "Andrej", deviceName="iPhone 14", deviceId=by_id).status_code == 204

        assert len(client.get(f"{INFO}/devices/available").json()) == 2
        assert client.get(f"{INFO}/devices/{by_name}").json()["available"] is True


class TestScenarios:
    """Walkthroughs of typical lab usage."""

    def test_unknown_device_is_enriched_with_placeholder_then_deleted(self, client):
        device_id = create_device(client, "Nokia")

        devices = client.get(f"{INFO}/devices/name/Nokia").json()

        assert len(devices) == 1
        assert devices[0]["available"] is True
        for field in ["technology", "twoGBands", "threeGBands", "fourGBands"]:
            assert devices[0][field] == "INFO UNAVAILABLE"

        client.delete(f"{MANAGEMENT}/devices/{device_id}")

        response = client.get(f"{INFO}/devices/name/Nokia")
        assert response.status_code == 404
        assert response.json()["errorName"] == "Device:DeviceNameNotFound"

    def test_known_device_is_enriched_from_dataset(self, client):
        create_device(client, "Samsung Galaxy S9")

        device = client.get(f"{INFO}/devices/name/Samsung Galaxy S9").json()[0]

        assert "GSM / CDMA / HSPA / EVDO / LTE" in device["technology"]
        assert "GSM 850 / 900 / 1800 / 1900 - SIM 1 & SIM 2 (dual-SIM model only)" in device["twoGBands"]
        assert "HSDPA 850 / 900 / 1700(AWS) / 1900 / 2100 - Global, USA" in device["threeGBands"]
        assert device["fourGBands"].startswith("LTE band 1(2100), 2(1900), 3(1800), 4(1700/2100)")

    def test_single_unit_cannot_be_booked_twice(self, client):
        create_device(client, "iPhone 14")

        assert book(client, "Andrej", deviceName="iPhone 14").status_code == 204
        response = book(client, "Peter", deviceName="iPhone 14")

        assert response.status_code == 409
        assert response.json()["errorName"] == "Booking:DeviceNotAvailable"
        assert client.get(f"{INFO}/devices/available").json() == []
        assert len(client.get(f"{INFO}/devices").json()) == 1

    def test_two_units_with_same_name_both_bookable(self, client):
        create_device(client, "iPhone 14")
        create_device(client, "iPhone 14")

        assert book(client, "Andrej", deviceName="iPhone 14").status_code == 204
        assert book(client, "Peter", deviceName="iPhone 14").status_code == 204

        assert client.get(f"{INFO}/devices/available").json() == []
        people = {d["lastBookedPersonName"] for d in client.get(f"{INFO}/devices").json()}
        assert people == {"Andrej", "Peter"}

    def test_rebooking_later_has_later_timestamp(self, client, frozen_clock):
        device_id = create_device(client, "iPhone 14")

        book(client, "Andrej", deviceId=device_id)
        t1 = client.get(f"{INFO}/devices/{device_id}").json()["lastBookedTime"]
        give_back(client, "Andrej", deviceId=device_id)

        frozen_clock.advance(seconds=2)
        book(client, "Andrej", deviceId=device_id)
        t2 = client.get(f"{INFO}/devices/{device_id}").json()["lastBookedTime"]

        assert datetime.fromisoformat(t2) > datetime.fromisoformat(t1)

    def test_booking_without_target_rejected(self, client):
        response = book(client, "Andrej")

        assert response.status_code == 400
        body = response.json()
        assert body["errorCode"] == "INVALID_ARGUMENT"
        assert body["errorName"] == "Booking:RequestMustHaveEitherDeviceIdOrName"


class TestLogStream:
    """Tests for the /logs WebSocket."""

    def test_registry_events_are_streamed(self, client):
        with client.websocket_connect("/logs") as ws:
            create_device(client, "Nokia")
            message = ws.receive_json()

        assert message["msg_type"] == "log"
        assert message["message"].startswith("[REGISTRY] Registered device")

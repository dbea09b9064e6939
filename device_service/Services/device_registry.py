# device_service/Services/device_registry.py
"""
Device registry and booking state machine.

Per device:

              book(p)                 return(p)
    AVAILABLE ───────► BOOKED(p, t) ───────────► AVAILABLE  (p, t kept)
                           │
                           └─ return by another person: rejected

Concurrency:
- Every mutation is one read-check-write transaction executed under the
  exclusive side of the database read-write lock, so two bookings of the
  same device can never both see it available.
- Reads share the lock and run concurrently with each other.
- Any storage fault rolls the transaction back and surfaces as
  InternalStorageFailure.

Booking timestamps:
- Wall-clock time in one reference timezone, stored as ISO-8601 with offset
  and microseconds.
- Strictly increasing per device: if the clock has not moved past the
  previous lastBookedTime of that device, previous + 1µs is stored instead.
"""

import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Iterable, List, Optional
from zoneinfo import ZoneInfo

from device_service.Core import log_ws
from device_service.Core.errors import (
    DeviceIdNotFound,
    DeviceNotAvailable,
    InvalidDeviceName,
    NoPersonWithGivenBookedDevice,
)
from device_service.DB.session import DeviceDatabase
from device_service.Repositories import device as device_repo
from device_service.Schemas.device import Device_record

_OFFSET_PATTERN = re.compile(r"^(?P<sign>[+-])(?P<hours>\d{2}):?(?P<minutes>\d{2})$")

TIMESTAMP_STEP = timedelta(microseconds=1)


def resolve_timezone(value: str) -> tzinfo:
    """
    Turn a BOOKING_TIMEZONE value into a tzinfo.

    Examples:
        resolve_timezone("+04:00")      # fixed offset
        resolve_timezone("UTC")
        resolve_timezone("Asia/Dubai")  # IANA zone
    """
    value = value.strip()

    if value.upper() in ("Z", "UTC"):
        return timezone.utc

    match = _OFFSET_PATTERN.match(value)
    if match:
        delta = timedelta(hours=int(match["hours"]), minutes=int(match["minutes"]))
        if match["sign"] == "-":
            delta = -delta
        return timezone(delta)

    return ZoneInfo(value)


def format_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="microseconds")


class DeviceRegistry:
    """
    Persistent device registry with the booking/return state machine.

    Args:
        database: Owned storage subsystem (engine + sessions + lock)
        booking_timezone: Reference timezone of lastBookedTime
        clock: Optional zero-argument callable returning an aware datetime;
            overrides the wall clock (tests)
    """

    def __init__(
        self,
        database: DeviceDatabase,
        booking_timezone: tzinfo = timezone.utc,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.database = database
        self.booking_timezone = booking_timezone
        self._clock = clock or (lambda: datetime.now(self.booking_timezone))

    # ==========================================================
    # Startup
    # ==========================================================

    def initialize(self, first_startup_devices: Iterable[str]) -> bool:
        """
        Create the devices table if needed; pre-populate it only if it was created.

        Returns:
            True if the table already existed (nothing registered)
        """
        table_was_there = self.database.ensure_schema()

        if not table_was_there:
            names = list(first_startup_devices)
            log_ws.log_from_thread("[REGISTRY] About to populate the table with the devices")
            for name in names:
                self.register(name)
            log_ws.log_from_thread(f"[REGISTRY] Populated the table with {len(names)} devices")

        return table_was_there

    # ==========================================================
    # Management
    # ==========================================================

    def register(self, name: str) -> int:
        """Insert an available device and return its id."""
        if name is None or not name.strip():
            raise InvalidDeviceName()

        with self.database.write_session("register device") as db:
            device = device_repo.create_device(db, name)
            device_id = device.id

        log_ws.log_from_thread(f"[REGISTRY] Registered device {device_id} ({name})")
        return device_id

    def delete(self, device_id: int) -> None:
        """Delete one device. Deleting a missing device is not an error."""
        with self.database.write_session("delete device") as db:
            deleted = device_repo.delete_device(db, device_id)

        if deleted:
            log_ws.log_from_thread(f"[REGISTRY] Deleted device {device_id}")

    def delete_all(self) -> int:
        """Delete every device. Returns how many rows were removed."""
        with self.database.write_session("delete all devices") as db:
            deleted = device_repo.delete_all_devices(db)

        log_ws.log_from_thread(f"[REGISTRY] Deleted all devices ({deleted})")
        return deleted

    # ==========================================================
    # Queries
    # ==========================================================

    def list_all(self) -> List[Device_record]:
        with self.database.read_session("list devices") as db:
            return _records(device_repo.get_all_devices(db))

    def list_available(self) -> List[Device_record]:
        with self.database.read_session("list available devices") as db:
            return _records(device_repo.get_all_devices(db, only_available=True))

    def list_by_name(self, substring: str) -> List[Device_record]:
        """Devices whose name contains `substring` (case-sensitive)."""
        with self.database.read_session("list devices by name") as db:
            return _records(device_repo.get_devices_by_name_substring(db, substring))

    def get_by_id(self, device_id: int) -> Device_record:
        """
        Raises:
            DeviceIdNotFound: no device with this id
        """
        with self.database.read_session("get device") as db:
            device = device_repo.get_device_by_id(db, device_id)
            if device is None:
                raise DeviceIdNotFound(device_id)
            return Device_record.model_validate(device)

    def count(self, only_available: bool = False) -> int:
        with self.database.read_session("count devices") as db:
            return device_repo.count_devices(db, only_available=only_available)

    # ==========================================================
    # Booking
    # ==========================================================

    def book_by_id(self, person: str, device_id: int) -> Device_record:
        """
        Book a specific device.

        Raises:
            DeviceIdNotFound: no device with this id
            DeviceNotAvailable: the device is already booked
        """
        with self.database.write_session("book device") as db:
            device = device_repo.get_device_by_id(db, device_id)
            if device is None:
                raise DeviceIdNotFound(device_id)
            if not device.available:
                raise DeviceNotAvailable()

            device_repo.mark_booked(db, device, person, self._next_booking_time(device.lastBookedTime))
            booked = Device_record.model_validate(device)

        log_ws.log_from_thread(f"[REGISTRY] Device {device_id} booked by {person}")
        return booked

    def book_by_name(self, person: str, name: str) -> Device_record:
        """
        Book the available device with exactly this name and the lowest id.

        Raises:
            DeviceNotAvailable: no device with this name is available
        """
        with self.database.write_session("book device by name") as db:
            device = device_repo.get_first_available_by_name(db, name)
            if device is None:
                raise DeviceNotAvailable()

            device_repo.mark_booked(db, device, person, self._next_booking_time(device.lastBookedTime))
            booked = Device_record.model_validate(device)

        log_ws.log_from_thread(f"[REGISTRY] Device {booked.id} ({name}) booked by {person}")
        return booked

    def return_by_id(self, person: str, device_id: int) -> Device_record:
        """
        Return a device booked by `person`.

        Raises:
            NoPersonWithGivenBookedDevice: missing, not booked, or booked by someone else
        """
        with self.database.write_session("return device") as db:
            device = device_repo.get_booked_device(db, device_id, person)
            if device is None:
                raise NoPersonWithGivenBookedDevice()

            device_repo.mark_returned(db, device)
            returned = Device_record.model_validate(device)

        log_ws.log_from_thread(f"[REGISTRY] Device {device_id} returned by {person}")
        return returned

    def return_by_name(self, person: str, name: str) -> Device_record:
        """
        Return the lowest-id device with exactly this name booked by `person`.

        Raises:
            NoPersonWithGivenBookedDevice: person has no booked device with this name
        """
        with self.database.write_session("return device by name") as db:
            device = device_repo.get_first_booked_by_name(db, name, person)
            if device is None:
                raise NoPersonWithGivenBookedDevice()

            device_repo.mark_returned(db, device)
            returned = Device_record.model_validate(device)

        log_ws.log_from_thread(f"[REGISTRY] Device {returned.id} ({name}) returned by {person}")
        return returned

    # ==========================================================
    # Helpers
    # ==========================================================

    def _next_booking_time(self, previous: Optional[str]) -> str:
        """Current time, bumped past `previous` if the clock has not advanced."""
        now = self._clock()

        if previous:
            try:
                previous_time = datetime.fromisoformat(previous)
            except ValueError:
                previous_time = None

            if previous_time is not None and now <= previous_time:
                now = (previous_time + TIMESTAMP_STEP).astimezone(now.tzinfo)

        return format_timestamp(now)


def _records(devices) -> List[Device_record]:
    return [Device_record.model_validate(device) for device in devices]

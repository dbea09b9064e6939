# device_service/Repositories/device.py

"""
Device Repository Module

Session-level queries for the Device model.

Responsibilities:
- CRUD operations for devices
- Lookups used by the booking state machine
- Device counts

Transactions:
    These functions never commit. They run inside a session opened by
    DeviceDatabase.read_session() / write_session(), which owns the lock,
    the commit and the rollback. Writes call flush() so generated ids and
    constraint violations surface inside the caller's transaction.

Ordering:
    Every multi-row query is ordered by ascending id. Booking and returning
    by name pick the first row, i.e. the lowest id.

Usage:
    from device_service.Repositories import device as device_repo

    with database.read_session("list devices") as db:
        devices = device_repo.get_all_devices(db, only_available=True)
"""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from device_service.Models.device import Device


# ==========================================================
# 📌 BASIC CRUD OPERATIONS
# ==========================================================

def get_all_devices(db: Session, only_available: bool = False) -> List[Device]:
    """
    Get all devices, ordered by id.

    Args:
        db: SQLAlchemy session
        only_available: If True, returns only devices that are not booked
    """
    query = db.query(Device)

    if only_available:
        query = query.filter(Device.available == 1)

    return query.order_by(Device.id).all()


def get_devices_by_name_substring(db: Session, substring: str) -> List[Device]:
    """
    Get devices whose name contains `substring` (case-sensitive).

    instr() is used instead of LIKE: SQLite's LIKE ignores ASCII case and
    treats '%' and '_' in the argument as wildcards.

    Example:
        get_devices_by_name_substring(db, "iPhone")  # iPhone 13, iPhone 14, ...
    """
    return (
        db.query(Device)
        .filter(func.instr(Device.name, substring) > 0)
        .order_by(Device.id)
        .all()
    )


def get_device_by_id(db: Session, device_id: int) -> Optional[Device]:
    """Get a device by id, or None."""
    return db.query(Device).filter(Device.id == device_id).first()


def create_device(db: Session, name: str) -> Device:
    """
    Insert a new available device and flush to obtain its id.

    Returns:
        The new Device (id populated)
    """
    new_device = Device(
        name=name,
        available=1,
        lastBookedPersonName=None,
        lastBookedTime=None,
    )
    db.add(new_device)
    db.flush()
    return new_device


def delete_device(db: Session, device_id: int) -> bool:
    """
    Delete a device (hard delete).

    Returns:
        True if a row was removed, False if no such device
    """
    deleted = db.query(Device).filter(Device.id == device_id).delete(synchronize_session=False)
    return deleted > 0


def delete_all_devices(db: Session) -> int:
    """Delete every device. Returns the number of rows removed."""
    return db.query(Device).delete(synchronize_session=False)


# ==========================================================
# 📌 BOOKING LOOKUPS
# ==========================================================

def get_first_available_by_name(db: Session, name: str) -> Optional[Device]:
    """
    Lowest-id available device whose name is exactly `name`.
    """
    return (
        db.query(Device)
        .filter(Device.name == name, Device.available == 1)
        .order_by(Device.id)
        .first()
    )


def get_booked_device(db: Session, device_id: int, person: str) -> Optional[Device]:
    """
    The device with this id if it is currently booked by `person`.
    """
    return (
        db.query(Device)
        .filter(
            Device.id == device_id,
            Device.available == 0,
            Device.lastBookedPersonName == person,
        )
        .first()
    )


def get_first_booked_by_name(db: Session, name: str, person: str) -> Optional[Device]:
    """
    Lowest-id device named exactly `name` that is currently booked by `person`.
    """
    return (
        db.query(Device)
        .filter(
            Device.name == name,
            Device.available == 0,
            Device.lastBookedPersonName == person,
        )
        .order_by(Device.id)
        .first()
    )


# ==========================================================
# 📌 STATE TRANSITIONS
# ==========================================================

def mark_booked(db: Session, device: Device, person: str, booked_at: str) -> Device:
    """
    AVAILABLE -> BOOKED(person, booked_at). Caller has checked availability.
    """
    device.available = 0
    device.lastBookedPersonName = person
    device.lastBookedTime = booked_at
    db.flush()
    return device


def mark_returned(db: Session, device: Device) -> Device:
    """
    BOOKED -> AVAILABLE. The last-booked fields are kept as history.
    """
    device.available = 1
    db.flush()
    return device


# ==========================================================
# 📌 DEVICE STATISTICS
# ==========================================================

def count_devices(db: Session, only_available: bool = False) -> int:
    """Count devices, optionally only the available ones."""
    query = db.query(Device)

    if only_available:
        query = query.filter(Device.available == 1)

    return query.count()

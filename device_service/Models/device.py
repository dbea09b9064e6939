# device_service/Models/device.py

"""
Device Model - Lab Device Registry

SQLAlchemy model for the physical devices kept in the lab.

Database Table: devices
Primary Key: id (INTEGER AUTOINCREMENT, never reused)

Column names are camelCase so that the on-disk schema matches the one the
service has always used:

    CREATE TABLE devices (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        available INTEGER NOT NULL,
        lastBookedPersonName TEXT,
        lastBookedTime TEXT
    )

Usage:
    from device_service.Models.device import Device

    with database.write_session("register device") as db:
        db.add(Device(name="iPhone 14", available=1))
"""

from sqlalchemy import CheckConstraint, Column, Integer, Text
from sqlalchemy.orm import declared_attr

from device_service.DB.base_class import Base


class Device(Base):
    """
    A physical device that can be booked.

    Schema:
    - id (PK): Assigned by the database, strictly increasing
    - name: Model name, not unique (several units of the same model)
    - available: 1 when free, 0 while booked
    - lastBookedPersonName: Who booked it last (kept after return)
    - lastBookedTime: ISO-8601 timestamp with offset of the last booking
    """

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return "devices"

    @declared_attr.directive
    def __table_args__(cls):
        return (
            CheckConstraint("available IN (0, 1)", name="ck_devices_available"),
            {"sqlite_autoincrement": True},
        )

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        doc="Registry-assigned identifier, never reused",
    )

    name = Column(
        Text,
        nullable=False,
        doc="Device model name, e.g. 'Samsung Galaxy S9'",
    )

    available = Column(
        Integer,
        nullable=False,
        default=1,
        doc="1 if the device can be booked, 0 while booked",
    )

    lastBookedPersonName = Column(
        Text,
        nullable=True,
        doc="Person who booked the device most recently",
    )

    lastBookedTime = Column(
        Text,
        nullable=True,
        doc="ISO-8601 time (with offset) of the most recent booking",
    )

    def __repr__(self) -> str:
        return (
            f"<Device(id={self.id!r}, name={self.name!r}, "
            f"available={self.available}, lastBookedPersonName={self.lastBookedPersonName!r})>"
        )

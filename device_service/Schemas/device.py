# device_service/Schemas/device.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

INFO_UNAVAILABLE = "INFO UNAVAILABLE"


class Network_details(BaseModel):
    """
    Cellular network capabilities of a device model.
    Comes from the remote specs API or the reference dataset.
    """
    model_config = ConfigDict(frozen=True)

    technology: str = ""
    twoGBands: str = ""
    threeGBands: str = ""
    fourGBands: str = ""

    @classmethod
    def unavailable(cls) -> "Network_details":
        """Placeholder used when no source knows the device."""
        return cls(
            technology=INFO_UNAVAILABLE,
            twoGBands=INFO_UNAVAILABLE,
            threeGBands=INFO_UNAVAILABLE,
            fourGBands=INFO_UNAVAILABLE,
        )


class Device_base(BaseModel):
    """
    Device fields as stored in the registry.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    available: bool
    lastBookedPersonName: Optional[str] = None
    lastBookedTime: Optional[datetime] = None


class Device_record(Device_base):
    """
    A registry row, detached from its session.
    Returned by every DeviceRegistry read.
    """
    pass


class Device_get(Device_base):
    """
    Device response: registry fields enriched with network capabilities.
    """
    technology: str
    twoGBands: str
    threeGBands: str
    fourGBands: str


class Device_create(BaseModel):
    """
    Schema for registering a new device.
    Blank names are rejected by the registry with InvalidDeviceName.
    """
    name: str = Field(..., description="Device model name, e.g. 'iPhone 14'")


class Device_created(BaseModel):
    id: int


class Booking_request(BaseModel):
    """
    Book or return request. At least one of deviceName / deviceId is
    required; the check lives in the booking route so that callers get the
    RequestMustHaveEitherDeviceIdOrName error rather than a validation error.
    """
    person: str = Field(..., min_length=1)
    deviceName: Optional[str] = None
    deviceId: Optional[int] = None

    @field_validator("person")
    @classmethod
    def person_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("person must not be blank")
        return value

    @property
    def has_target(self) -> bool:
        return self.deviceName is not None or self.deviceId is not None

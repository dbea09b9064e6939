"""
Service error types.

Every error the booking core can surface derives from DeviceServiceError and
carries an error code, a namespaced error name, an HTTP status and the
parameters that are safe to return to the caller. The FastAPI exception
handler in main.py renders them as:

    {
        "errorCode": "NOT_FOUND",
        "errorName": "Device:DeviceIdNotFound",
        "errorInstanceId": "5b0e8f4c-...",
        "parameters": {"deviceId": 42}
    }
"""

from typing import Any, Dict, Optional


class DeviceServiceError(Exception):
    """Base class for errors surfaced to API callers."""

    error_code: str = "INTERNAL"
    error_name: str = "Default:Internal"
    status_code: int = 500

    def __init__(self, message: str, parameters: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.parameters = parameters or {}

    def to_dict(self, error_instance_id: str) -> Dict[str, Any]:
        return {
            "errorCode": self.error_code,
            "errorName": self.error_name,
            "errorInstanceId": error_instance_id,
            "parameters": self.parameters,
        }


# ==========================================================
# Device errors
# ==========================================================

class DeviceIdNotFound(DeviceServiceError):
    error_code = "NOT_FOUND"
    error_name = "Device:DeviceIdNotFound"
    status_code = 404

    def __init__(self, device_id: int) -> None:
        super().__init__(f"Device with id {device_id} not found", {"deviceId": device_id})
        self.device_id = device_id


class DeviceNameNotFound(DeviceServiceError):
    error_code = "NOT_FOUND"
    error_name = "Device:DeviceNameNotFound"
    status_code = 404

    def __init__(self, device_name: str) -> None:
        super().__init__(f"No device name contains '{device_name}'", {"deviceName": device_name})
        self.device_name = device_name


class InvalidDeviceName(DeviceServiceError):
    error_code = "INVALID_ARGUMENT"
    error_name = "Device:InvalidDeviceName"
    status_code = 400

    def __init__(self) -> None:
        super().__init__("Device name must be non-empty")


# ==========================================================
# Booking errors
# ==========================================================

class DeviceNotAvailable(DeviceServiceError):
    error_code = "CONFLICT"
    error_name = "Booking:DeviceNotAvailable"
    status_code = 409

    def __init__(self) -> None:
        super().__init__("Device is not available for booking")


class NoPersonWithGivenBookedDevice(DeviceServiceError):
    error_code = "INVALID_ARGUMENT"
    error_name = "Booking:NoPersonWithGivenBookedDevice"
    status_code = 400

    def __init__(self) -> None:
        super().__init__("Given person has not booked the given device")


class RequestMustHaveEitherDeviceIdOrName(DeviceServiceError):
    error_code = "INVALID_ARGUMENT"
    error_name = "Booking:RequestMustHaveEitherDeviceIdOrName"
    status_code = 400

    def __init__(self) -> None:
        super().__init__("Booking request must have either deviceId or deviceName")


# ==========================================================
# Storage errors
# ==========================================================

class InternalStorageFailure(DeviceServiceError):
    """Any database fault. The transaction has been rolled back."""

    error_code = "INTERNAL"
    error_name = "Default:Internal"
    status_code = 500

    def __init__(self, operation: str) -> None:
        # The driver message stays in the logs; callers only see the operation
        super().__init__(f"Storage failure during {operation}")
        self.operation = operation

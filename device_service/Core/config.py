"""
device_service/Core/config.py
=================================
Application Configuration Module
=================================

Two configuration sources feed the device booking service:

1. **Settings** (Pydantic Settings): process-level knobs read from environment
   variables (database URL, file locations, TLS material, timezone, cache and
   remote client tuning). Every field has a default, so importing this module
   never fails.
2. **Configuration** (YAML): the deployment file describing where to listen,
   which devices to register on first startup and the optional RapidAPI key.

Environment Variables:
---------------------
    - CONFIG_PATH: YAML configuration file (default: var/conf/device-service.yml)
    - DATABASE_URL: SQLAlchemy URL of the embedded database
    - GSM_DATASET_CSV: Reference dataset used for device enrichment
    - SSL_CERTFILE / SSL_KEYFILE: TLS material for the HTTPS listener
    - BOOKING_TIMEZONE: Timezone of booking timestamps (offset or IANA name)
    - RAPID_API_TIMEOUT_S: Connect/read timeout of the remote specs client
    - SPECS_CACHE_MAX_SIZE: Enrichment cache capacity
    - SPECS_CACHE_MISS_TTL_S: Lifetime of cached "not found" lookups

Usage Example:
-------------
    from device_service.Core.config import settings, load_configuration

    conf = load_configuration(settings.CONFIG_PATH)
    print(f"Listening on {conf.host}:{conf.port}")
"""

from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when the YAML configuration cannot be loaded. Fatal at startup."""


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Values are validated at startup using Pydantic's type system.
    """

    model_config = SettingsConfigDict(env_file=None, case_sensitive=False)

    # ============================================================
    # PROJECT METADATA
    # ============================================================
    PROJECT_NAME: str = "Device Booking Service"
    PROJECT_VERSION: str = "1.0.0"

    # ============================================================
    # FILE LOCATIONS
    # ============================================================
    CONFIG_PATH: str = "var/conf/device-service.yml"
    """YAML deployment configuration (host, port, initial devices, API key)."""

    DATABASE_URL: str = "sqlite:///var/db/database.db"
    """
    SQLAlchemy URL of the device registry.

    The registry is designed around an embedded SQLite file. The parent
    directory of the file is created on startup when missing.
    """

    GSM_DATASET_CSV: str = "var/gsmarena_data/gsmarena_dataset.csv"
    """Reference dataset of network capabilities keyed by device name."""

    SSL_CERTFILE: str = "var/certs/server-cert.pem"
    SSL_KEYFILE: str = "var/certs/server-key.pem"

    # ============================================================
    # BOOKING
    # ============================================================
    BOOKING_TIMEZONE: str = "+04:00"
    """
    Reference timezone for lastBookedTime.

    Accepts a fixed UTC offset ("+04:00", "-05:30") or an IANA zone name
    ("Asia/Dubai"). Stored timestamps are compared as strings elsewhere, so
    keep this stable for the lifetime of a database.
    """

    # ============================================================
    # REMOTE SPECS CLIENT
    # ============================================================
    RAPID_API_TIMEOUT_S: float = 10.0

    SPECS_CACHE_MAX_SIZE: int = 1000
    """Maximum number of device names kept in the enrichment cache (LRU)."""

    SPECS_CACHE_MISS_TTL_S: int = 300
    """
    Lifetime of cached "absent" results (seconds).

    Found capability records stay cached until evicted. Misses, which include
    remote failures, expire so the remote API is asked again later.
    """


class Configuration(BaseModel):
    """
    Deployment configuration loaded from YAML.

    Example file:
        host: 0.0.0.0
        port: 8345
        firstStartupRegisterDevices:
          - Samsung Galaxy S9
          - iPhone 14
        apiKey: some-api-key
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    host: str
    port: int = Field(..., gt=0, lt=65535)
    first_startup_register_devices: List[str] = Field(
        default_factory=list, alias="firstStartupRegisterDevices"
    )
    api_key: Optional[str] = Field(None, alias="apiKey")

    @property
    def http_port(self) -> int:
        """Auxiliary plain HTTP listener port."""
        return self.port + 1

    @property
    def remote_lookup_enabled(self) -> bool:
        return bool(self.api_key)


def load_configuration(path: Union[str, Path]) -> Configuration:
    """
    Load and validate the YAML configuration file.

    Raises:
        ConfigurationError: file missing, not valid YAML, or failing validation
    """
    config_path = Path(path)

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")

    try:
        return Configuration.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e


# ============================================================
# SETTINGS INSTANCE
# ============================================================
settings = Settings()

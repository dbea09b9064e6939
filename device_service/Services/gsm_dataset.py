# device_service/Services/gsm_dataset.py

"""
Reference dataset of device network capabilities (GSMArena export).

The CSV is read once at startup into a dict keyed by device name.

Column layout (0-indexed):
    0: device name (key)
    1: network technology
    2: 2G bands
    4: 3G bands
    6: 4G bands
All other columns are ignored. A header row is loaded like any other row and
simply never matches a real device name. Duplicate names: last row wins.
"""

import csv
from pathlib import Path
from typing import Dict, Optional, Union

from device_service.Core import log_ws
from device_service.Schemas.device import Network_details

NAME_COLUMN = 0
TECHNOLOGY_COLUMN = 1
TWO_G_COLUMN = 2
THREE_G_COLUMN = 4
FOUR_G_COLUMN = 6
MIN_COLUMNS = FOUR_G_COLUMN + 1


class DatasetLoadError(Exception):
    """The reference CSV is missing or unreadable. Fatal at startup."""


class GsmArenaDataset:
    """
    In-memory lookup of network capabilities by exact device name.
    """

    def __init__(self, records: Optional[Dict[str, Network_details]] = None):
        self._records: Dict[str, Network_details] = dict(records or {})

    @classmethod
    def from_csv(cls, filepath: Union[str, Path]) -> "GsmArenaDataset":
        """
        Load the dataset from a UTF-8 CSV file.

        Raises:
            DatasetLoadError: file missing or not parseable as CSV
        """
        records: Dict[str, Network_details] = {}
        skipped = 0

        log_ws.log_from_thread(f"[DATASET] Loading device capabilities from: {filepath}")

        try:
            with open(filepath, "r", encoding="utf-8", newline="") as f:
                for row in csv.reader(f):
                    if len(row) < MIN_COLUMNS:
                        skipped += 1
                        continue

                    records[row[NAME_COLUMN]] = Network_details(
                        technology=row[TECHNOLOGY_COLUMN],
                        twoGBands=row[TWO_G_COLUMN],
                        threeGBands=row[THREE_G_COLUMN],
                        fourGBands=row[FOUR_G_COLUMN],
                    )
        except OSError as e:
            raise DatasetLoadError(f"Cannot read dataset {filepath}: {e}") from e
        except (csv.Error, UnicodeDecodeError) as e:
            raise DatasetLoadError(f"Invalid CSV in {filepath}: {e}") from e

        if skipped:
            log_ws.log_from_thread(f"[DATASET] Skipped {skipped} rows with fewer than {MIN_COLUMNS} columns", "warning")
        log_ws.log_from_thread(f"[DATASET] Loaded {len(records)} devices")

        return cls(records)

    def lookup(self, device_name: str) -> Optional[Network_details]:
        """Capabilities for exactly this name, or None."""
        return self._records.get(device_name)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, device_name: str) -> bool:
        return device_name in self._records

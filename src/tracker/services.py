"""
Ingest and query services sitting between the HTTP layer and the store.

Neither service swallows errors: ValidationError and StorageError propagate
to the caller, which decides how to surface them.
"""
import logging
import math
from datetime import datetime
from typing import List, Optional, Union

from .errors import ValidationError
from .models import LocationRecord
from .store import LocationStore

logger = logging.getLogger(__name__)

# Returned by get_latest when nothing has been reported yet; device map
# clients expect coordinates rather than an empty body.
EMPTY_LOCATION = {"lat": 0, "lon": 0}


def parse_coordinate(name: str, raw) -> float:
    """
    Convert a raw coordinate (number or numeric string) to a finite float.

    Range is deliberately not checked: lon=200 is stored as-is.

    Args:
        name: Field name used in error messages ("latitude"/"longitude")
        raw: Value from the query string or JSON body

    Returns:
        The coordinate as a float

    Raises:
        ValidationError: If the value is missing, blank, non-numeric,
            a boolean, NaN or infinite
    """
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        raise ValidationError(f"Missing {name}")
    if isinstance(raw, bool):
        raise ValidationError(f"Invalid {name}: {raw!r} is not a number")

    try:
        value = float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}: {raw!r} is not a number") from None

    if not math.isfinite(value):
        raise ValidationError(f"Invalid {name}: {raw!r} is not a finite number")
    return value


class IngestService:
    """Validates incoming reports and stores the accepted ones."""

    def __init__(self, store: LocationStore):
        self._store = store

    def report(
        self,
        raw_latitude,
        raw_longitude,
        recorded_at: Optional[datetime] = None,
    ) -> LocationRecord:
        """
        Validate and store one location report.

        Args:
            raw_latitude: Latitude as received (number or string)
            raw_longitude: Longitude as received (number or string)
            recorded_at: Optional fix time; the store uses "now" when omitted

        Returns:
            The stored record

        Raises:
            ValidationError: If either coordinate is missing or not numeric
            StorageError: If the record could not be persisted
        """
        if raw_latitude is None or raw_longitude is None:
            raise ValidationError("Missing latitude or longitude")

        latitude = parse_coordinate("latitude", raw_latitude)
        longitude = parse_coordinate("longitude", raw_longitude)

        record = self._store.append(latitude, longitude, recorded_at)
        logger.info(f"Location saved: lat={latitude}, lon={longitude} (id={record.id})")
        return record


class QueryService:
    """Read views over the store, plus the on-demand retention cleanup."""

    def __init__(self, store: LocationStore, retention_cap: int = 100):
        self._store = store
        self._retention_cap = retention_cap

    def get_latest(self) -> Union[LocationRecord, dict]:
        """Latest record, or EMPTY_LOCATION when nothing is stored yet."""
        record = self._store.latest()
        if record is None:
            return dict(EMPTY_LOCATION)
        return record

    def get_history(self) -> List[LocationRecord]:
        """All retained records, newest first."""
        return self._store.all()

    def cleanup(self, cap: Optional[int] = None) -> int:
        """
        Trim the store down to `cap` records (configured cap by default).

        Returns:
            Number of records deleted
        """
        return self._store.trim(self._retention_cap if cap is None else cap)

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


def as_utc(ts: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(frozen=True, order=True)
class LocationRecord:
    """
    A stored location report.

    Records compare and sort by (recorded_at, id), which is the order the
    store uses for history reads and retention trims.
    """
    recorded_at: datetime
    id: int
    latitude: float = field(compare=False)
    longitude: float = field(compare=False)

    @classmethod
    def from_row(cls, row) -> "LocationRecord":
        """Build a record from a GpsLocation row."""
        return cls(
            recorded_at=as_utc(row.timestamp),
            id=row.id,
            latitude=row.latitude,
            longitude=row.longitude,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "lat": self.latitude,
            "lon": self.longitude,
            "timestamp": self.recorded_at.isoformat(),
        }


class LocationReport(BaseModel):
    """
    Location report sent as a JSON body.

    Coordinates are passed through untouched (no float coercion, so JSON
    true stays a bool) and validated by IngestService, which rejects bad
    values with a 400 and a readable message.
    """
    lat: Any = None
    lon: Any = None
    timestamp: Optional[datetime] = Field(default=None, description="When the fix was taken (defaults to now)")


class ReportResponse(BaseModel):
    """Acknowledgement of a stored report."""
    success: bool = True
    lat: float
    lon: float


class LocationOut(BaseModel):
    """One record as returned by the history endpoint."""
    id: int
    lat: float
    lon: float
    timestamp: datetime


class LatestLocation(BaseModel):
    """Latest position; timestamp is absent for the empty-store placeholder."""
    lat: float
    lon: float
    timestamp: Optional[datetime] = None


class CleanupResponse(BaseModel):
    message: str
    deleted: int

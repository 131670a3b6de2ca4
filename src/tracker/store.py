"""
Bounded, ordered store of location reports.

LocationStore is the only component that writes to the gps_locations table.
Records are ordered by (timestamp, id) everywhere: newest first for reads,
oldest first for retention trims.

Trim semantics:
- excess = max(0, count - cap) oldest records are removed in one transaction
- concurrent trims are serialized, so two trims never evict more than one would
- appends that land while a trim runs may survive until the next trim
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional, TypeVar

from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import metrics
from .database import GpsLocation
from .errors import StorageError
from .models import LocationRecord, as_utc
from .retention import excess_count

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Reads are idempotent, so one transient failure is retried before giving up.
# Writes are never retried here.
READ_ATTEMPTS = 2


class LocationStore:
    """
    Append/read/trim operations over persisted location records.

    Args:
        session_factory: SQLAlchemy sessionmaker bound to the backing store.
            The store never opens its own connection.
        read_attempts: How many times an idempotent read is tried on
            OperationalError before raising StorageError.
    """

    def __init__(self, session_factory: sessionmaker, read_attempts: int = READ_ATTEMPTS):
        self._session_factory = session_factory
        self._read_attempts = max(1, read_attempts)
        self._trim_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def append(
        self,
        latitude: float,
        longitude: float,
        recorded_at: Optional[datetime] = None,
    ) -> LocationRecord:
        """
        Persist a new location record.

        Args:
            latitude: Latitude in degrees
            longitude: Longitude in degrees
            recorded_at: When the fix was taken (defaults to now, UTC)

        Returns:
            The stored record with its assigned id

        Raises:
            StorageError: If the write could not be committed
        """
        ts = as_utc(recorded_at) if recorded_at is not None else datetime.now(timezone.utc)
        row = GpsLocation(latitude=latitude, longitude=longitude, timestamp=ts)

        def _write(session: Session) -> LocationRecord:
            session.add(row)
            session.commit()
            return LocationRecord(recorded_at=ts, id=row.id, latitude=latitude, longitude=longitude)

        return self._write("append", _write)

    def trim(self, cap: int) -> int:
        """
        Delete the oldest records so that at most `cap` remain.

        Args:
            cap: Number of most recent records to keep

        Returns:
            Number of records deleted (0 when already within cap)

        Raises:
            ValueError: If cap is negative
            StorageError: If the trim could not be committed
        """
        if cap < 0:
            raise ValueError(f"cap must be >= 0, got {cap}")

        def _trim(session: Session) -> int:
            total = session.scalar(select(func.count()).select_from(GpsLocation))
            excess = excess_count(total, cap)
            if excess == 0:
                return 0

            # Lock the selected rows where the database supports it (ignored on SQLite)
            oldest_ids = session.scalars(
                select(GpsLocation.id)
                .order_by(GpsLocation.timestamp.asc(), GpsLocation.id.asc())
                .limit(excess)
                .with_for_update()
            ).all()

            result = session.execute(
                delete(GpsLocation)
                .where(GpsLocation.id.in_(oldest_ids))
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount

        with self._trim_lock:
            deleted = self._write("trim", _trim)

        if deleted:
            metrics.records_evicted_total.inc(deleted)
            logger.info(f"Deleted {deleted} old records (cap={cap})")
        return deleted

    def clear(self) -> int:
        """Delete every record. Returns the number removed."""

        def _clear(session: Session) -> int:
            result = session.execute(delete(GpsLocation))
            session.commit()
            return result.rowcount

        with self._trim_lock:
            return self._write("clear", _clear)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def latest(self) -> Optional[LocationRecord]:
        """
        Most recent record by timestamp (ties: highest id).

        Returns None when the store is empty.
        """

        def _latest(session: Session) -> Optional[LocationRecord]:
            row = session.scalars(
                select(GpsLocation)
                .order_by(GpsLocation.timestamp.desc(), GpsLocation.id.desc())
                .limit(1)
            ).first()
            return LocationRecord.from_row(row) if row is not None else None

        return self._read("latest", _latest)

    def all(self) -> List[LocationRecord]:
        """Every retained record, newest first. Empty list when empty."""

        def _all(session: Session) -> List[LocationRecord]:
            rows = session.scalars(
                select(GpsLocation)
                .order_by(GpsLocation.timestamp.desc(), GpsLocation.id.desc())
            ).all()
            return [LocationRecord.from_row(row) for row in rows]

        return self._read("all", _all)

    def count(self) -> int:
        """Number of records currently stored."""
        return self._read(
            "count",
            lambda session: session.scalar(select(func.count()).select_from(GpsLocation)),
        )

    def ping(self) -> None:
        """Round-trip to the backing store. Raises StorageError if unreachable."""
        self._read("ping", lambda session: session.execute(text("SELECT 1")))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _write(self, operation: str, fn: Callable[[Session], T]) -> T:
        session = self._session_factory()
        try:
            result = fn(session)
        except SQLAlchemyError as e:
            session.rollback()
            metrics.store_operations_total.labels(operation=operation, status="error").inc()
            raise StorageError(f"{operation} failed") from e
        finally:
            session.close()

        metrics.store_operations_total.labels(operation=operation, status="success").inc()
        return result

    def _read(self, operation: str, fn: Callable[[Session], T]) -> T:
        for attempt in range(1, self._read_attempts + 1):
            session = self._session_factory()
            try:
                result = fn(session)
            except OperationalError as e:
                metrics.store_operations_total.labels(operation=operation, status="error").inc()
                if attempt == self._read_attempts:
                    raise StorageError(f"{operation} failed") from e
                logger.warning(f"Store read '{operation}' failed (attempt {attempt}), retrying: {e}")
                continue
            except SQLAlchemyError as e:
                metrics.store_operations_total.labels(operation=operation, status="error").inc()
                raise StorageError(f"{operation} failed") from e
            finally:
                session.close()

            metrics.store_operations_total.labels(operation=operation, status="success").inc()
            return result

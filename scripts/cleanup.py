"""
Retention cleanup job - trims the location store down to the retention cap.

Trimming is never triggered by incoming reports, so something has to call it.
Run this from cron, or leave it running with --interval.

Usage:
    python scripts/cleanup.py                 # one trim with RETENTION_CAP
    python scripts/cleanup.py --cap 50        # keep only the 50 newest records
    python scripts/cleanup.py --interval 300  # trim every 5 minutes until Ctrl+C
"""
import argparse
import logging
import os
import sys
import time

# Add project root to path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.tracker.config import Settings, configure_logging
from src.tracker.database import create_db_engine, create_session_factory, init_db
from src.tracker.errors import StorageError
from src.tracker.store import LocationStore

logger = logging.getLogger("cleanup")


def run_once(store: LocationStore, cap: int) -> int:
    """Trim once and log the outcome. Returns the number of records deleted."""
    deleted = store.trim(cap)
    remaining = store.count()
    logger.info(f"Cleanup done: deleted={deleted}, remaining={remaining}, cap={cap}")
    return deleted


def main(argv=None) -> int:
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Trim stored GPS locations to the retention cap")
    parser.add_argument("--cap", type=int, default=settings.retention_cap,
                        help=f"Records to keep (default: {settings.retention_cap})")
    parser.add_argument("--interval", type=int, default=None,
                        help="Repeat every N seconds instead of running once")
    args = parser.parse_args(argv)

    if args.cap < 0:
        parser.error("--cap must be >= 0")

    configure_logging(settings.log_level)
    engine = create_db_engine(settings)
    init_db(engine)
    store = LocationStore(create_session_factory(engine))

    try:
        if args.interval is None:
            run_once(store, args.cap)
            return 0

        logger.info(f"Trimming every {args.interval}s (press Ctrl+C to stop)")
        while True:
            try:
                run_once(store, args.cap)
            except StorageError as e:
                # Trim is idempotent; the next tick retries
                logger.error(f"Cleanup failed, will retry: {e!r}")
            time.sleep(args.interval)
    except StorageError as e:
        logger.error(f"Cleanup failed: {e!r}")
        return 1
    except KeyboardInterrupt:
        logger.info("Cleanup job stopped")
        return 0
    finally:
        engine.dispose()


if __name__ == "__main__":
    sys.exit(main())

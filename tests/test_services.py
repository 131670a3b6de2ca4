"""
Tests for IngestService, QueryService and coordinate parsing.
"""
import math
import pytest
from unittest.mock import Mock
from src.tracker.errors import StorageError, ValidationError
from src.tracker.services import (
    EMPTY_LOCATION,
    IngestService,
    QueryService,
    parse_coordinate,
)
from src.tracker.store import LocationStore


@pytest.mark.unit
class TestParseCoordinate:
    """Test suite for parse_coordinate."""

    @pytest.mark.parametrize("raw,expected", [
        (12.34, 12.34),
        (0, 0.0),
        ("56.78", 56.78),
        (" -74.006 ", -74.006),
        ("0", 0.0),
        ("200", 200.0),
    ])
    def test_valid_values(self, raw, expected):
        assert parse_coordinate("latitude", raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing_values(self, raw):
        with pytest.raises(ValidationError, match="Missing latitude"):
            parse_coordinate("latitude", raw)

    @pytest.mark.parametrize("raw", ["abc", "12,34", [1.0], {"lat": 1}, True])
    def test_non_numeric_values(self, raw):
        with pytest.raises(ValidationError, match="not a number"):
            parse_coordinate("longitude", raw)

    @pytest.mark.parametrize("raw", ["nan", "inf", "-Infinity", math.nan, math.inf])
    def test_non_finite_values(self, raw):
        with pytest.raises(ValidationError, match="finite"):
            parse_coordinate("latitude", raw)


@pytest.mark.unit
class TestIngestService:
    """Test suite for IngestService.report."""

    def test_report_stores_record(self, store):
        service = IngestService(store)

        record = service.report(12.34, 56.78)

        assert record.latitude == 12.34
        assert record.longitude == 56.78
        assert store.latest() == record

    def test_report_accepts_strings(self, store):
        """Test that query-string values are parsed before storing."""
        record = IngestService(store).report("12.34", "56.78")
        assert (record.latitude, record.longitude) == (12.34, 56.78)

    def test_report_with_timestamp(self, store, base_time):
        record = IngestService(store).report(1.0, 2.0, base_time)
        assert record.recorded_at == base_time

    def test_missing_latitude_rejected(self, store):
        """Test Report(lat=None, lon=5.0) fails and stores nothing."""
        with pytest.raises(ValidationError):
            IngestService(store).report(None, 5.0)
        assert store.count() == 0

    def test_non_numeric_latitude_rejected(self, store):
        """Test Report(lat="abc", lon=5.0) fails and stores nothing."""
        with pytest.raises(ValidationError):
            IngestService(store).report("abc", 5.0)
        assert store.count() == 0

    def test_missing_longitude_rejected(self, store):
        with pytest.raises(ValidationError, match="Missing latitude or longitude"):
            IngestService(store).report(5.0, None)
        assert store.count() == 0

    def test_validation_happens_before_store(self):
        mock_store = Mock(spec=LocationStore)

        with pytest.raises(ValidationError):
            IngestService(mock_store).report("abc", "5.0")

        mock_store.append.assert_not_called()

    def test_storage_error_propagates(self):
        mock_store = Mock(spec=LocationStore)
        mock_store.append.side_effect = StorageError("append failed")

        with pytest.raises(StorageError):
            IngestService(mock_store).report(1.0, 2.0)

        mock_store.append.assert_called_once_with(1.0, 2.0, None)

    def test_report_logs_saved_location(self, store, caplog):
        with caplog.at_level("INFO", logger="src.tracker.services"):
            IngestService(store).report(12.34, 56.78)

        assert "Location saved: lat=12.34, lon=56.78" in caplog.text


@pytest.mark.unit
class TestQueryService:
    """Test suite for QueryService."""

    def test_get_latest_empty_returns_placeholder(self, store):
        """Test that a fresh store yields {lat: 0, lon: 0}."""
        assert QueryService(store).get_latest() == {"lat": 0, "lon": 0}

    def test_placeholder_is_a_copy(self, store):
        latest = QueryService(store).get_latest()
        latest["lat"] = 99
        assert EMPTY_LOCATION == {"lat": 0, "lon": 0}

    def test_get_latest_returns_newest(self, store, at):
        store.append(1.0, 1.0, at(0))
        newest = store.append(2.0, 2.0, at(1))

        assert QueryService(store).get_latest() == newest

    def test_get_history_empty(self, store):
        assert QueryService(store).get_history() == []

    def test_get_history_newest_first(self, store, at):
        r1 = store.append(1.0, 1.0, at(0))
        r2 = store.append(2.0, 2.0, at(1))

        assert QueryService(store).get_history() == [r2, r1]

    def test_cleanup_uses_configured_cap(self, store, fill_store):
        fill_store(15)
        service = QueryService(store, retention_cap=10)

        assert service.cleanup() == 5
        assert store.count() == 10

    def test_cleanup_explicit_cap(self, store, fill_store):
        fill_store(15)
        assert QueryService(store, retention_cap=10).cleanup(cap=3) == 12

    def test_storage_errors_propagate(self):
        mock_store = Mock(spec=LocationStore)
        mock_store.latest.side_effect = StorageError("latest failed")
        mock_store.all.side_effect = StorageError("all failed")
        service = QueryService(mock_store)

        with pytest.raises(StorageError):
            service.get_latest()
        with pytest.raises(StorageError):
            service.get_history()

"""
Unit tests for the retention policy.
"""
import pytest
from src.tracker.retention import excess_count


@pytest.mark.unit
class TestExcessCount:
    """Test suite for excess_count."""

    def test_under_cap(self):
        """Test nothing is evicted below the cap."""
        assert excess_count(total=50, cap=100) == 0

    def test_at_cap(self):
        """Test nothing is evicted exactly at the cap."""
        assert excess_count(total=100, cap=100) == 0

    def test_over_cap(self):
        """Test the overshoot is evicted."""
        assert excess_count(total=150, cap=100) == 50

    def test_empty_store(self):
        """Test an empty store never evicts."""
        assert excess_count(total=0, cap=0) == 0

    def test_zero_cap_evicts_everything(self):
        """Test cap=0 evicts every record."""
        assert excess_count(total=7, cap=0) == 7

    @pytest.mark.parametrize("total,cap", [(0, 5), (3, 3), (10, 4), (1000, 1), (99, 100)])
    def test_matches_max_formula(self, total, cap):
        """Test excess is max(0, total - cap) and never exceeds total."""
        excess = excess_count(total, cap)
        assert excess == max(0, total - cap)
        assert 0 <= excess <= total

    def test_negative_total_rejected(self):
        with pytest.raises(ValueError):
            excess_count(total=-1, cap=100)

    def test_negative_cap_rejected(self):
        with pytest.raises(ValueError):
            excess_count(total=10, cap=-1)

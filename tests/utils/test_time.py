"""
Tests for time utilities.

Verifies that feed epochs are preferred over wall-clock time and that
day boundaries are evaluated in UTC.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from profithub_core.utils.time import (
    epoch_to_datetime,
    get_market_time,
    is_same_utc_day,
    now_ms,
)


class TestGetMarketTime:
    """Test get_market_time function."""

    def test_uses_feed_epoch_when_available(self):
        result = get_market_time(1700000000)
        assert result == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_falls_back_to_wall_clock_time(self):
        with patch('profithub_core.utils.time.datetime') as mock_datetime:
            mock_now = datetime(2023, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
            mock_datetime.now.return_value = mock_now

            result = get_market_time(None)
            assert result == mock_now
            mock_datetime.now.assert_called_once_with(timezone.utc)


class TestConversions:
    """Epoch conversions."""

    def test_epoch_to_datetime_is_utc(self):
        result = epoch_to_datetime(0)
        assert result.tzinfo == timezone.utc
        assert result.year == 1970

    def test_epoch_accepts_numeric_strings(self):
        assert epoch_to_datetime("1700000000") == epoch_to_datetime(1700000000)

    def test_now_ms(self):
        with patch('profithub_core.utils.time.utc_now') as mock_now:
            mock_now.return_value = datetime(2024, 1, 1, tzinfo=timezone.utc)
            assert now_ms() == 1704067200000


class TestIsSameUtcDay:
    """UTC calendar day comparison."""

    def test_same_day(self):
        first = datetime(2024, 3, 1, 0, 5, tzinfo=timezone.utc)
        second = datetime(2024, 3, 1, 23, 55, tzinfo=timezone.utc)
        assert is_same_utc_day(first, second)

    def test_different_day(self):
        first = datetime(2024, 3, 1, 23, 55, tzinfo=timezone.utc)
        assert not is_same_utc_day(first, first + timedelta(minutes=10))

    def test_other_timezones_are_normalized(self):
        # 2024-03-01 23:30 in UTC+2 is 21:30 UTC
        local = datetime(2024, 3, 1, 23, 30, tzinfo=timezone(timedelta(hours=2)))
        utc = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
        assert is_same_utc_day(local, utc)

"""Tests for bar standardization and tool input parsing."""

from datetime import datetime, timezone

import pytest

from invest_intel.models import AssetClass, EventImportance, ExpectedImpact, PriceBar
from invest_intel.utils.bars import CANONICAL_COLUMNS, bars_from_rows, bars_to_frame
from invest_intel.utils.inputs import asset_from_mapping, events_from_rows, parse_datetime


class TestBarsToFrame:
    """Tests for bars_to_frame."""

    def test_canonical_columns(self) -> None:
        """Test output always has the canonical schema."""
        bar = PriceBar(datetime(2024, 1, 2), 1, 2, 0.5, 1.5, 100)
        df = bars_to_frame([bar])
        assert list(df.columns) == CANONICAL_COLUMNS
        assert df["close"].iloc[0] == 1.5

    def test_empty(self) -> None:
        """Test empty input still has the schema."""
        assert list(bars_to_frame([]).columns) == CANONICAL_COLUMNS


class TestBarsFromRows:
    """Tests for bars_from_rows."""

    def test_date_or_timestamp_key(self) -> None:
        """Test either date key is accepted."""
        bars = bars_from_rows(
            [
                {"date": "2024-01-02", "close": 10},
                {"timestamp": datetime(2024, 1, 3), "close": 11, "high": 12, "low": 9},
            ]
        )
        assert bars[0].timestamp == datetime(2024, 1, 2)
        assert bars[1].high == 12

    def test_missing_ohl_fall_back_to_close(self) -> None:
        """Test open/high/low default to close and volume to 0."""
        bar = bars_from_rows([{"date": "2024-01-02", "close": 10}])[0]
        assert (bar.open, bar.high, bar.low, bar.volume) == (10.0, 10.0, 10.0, 0.0)

    def test_missing_close_raises(self) -> None:
        """Test a row without close raises ValueError."""
        with pytest.raises(ValueError, match="no close"):
            bars_from_rows([{"date": "2024-01-02"}])

    def test_missing_timestamp_raises(self) -> None:
        """Test a row without a timestamp raises ValueError."""
        with pytest.raises(ValueError, match="no timestamp"):
            bars_from_rows([{"close": 1}])


class TestInputs:
    """Tests for asset and event parsing."""

    def test_parse_datetime_naive_is_utc(self) -> None:
        """Test naive datetimes are taken as UTC."""
        assert parse_datetime("2024-01-02T10:00:00").tzinfo == timezone.utc

    def test_asset_from_mapping(self) -> None:
        """Test loose asset mappings are normalized."""
        asset = asset_from_mapping({"symbol": " btc ", "asset_class": "crypto", "market_cap": "1e12"})
        assert asset.symbol == "BTC"
        assert asset.name == "btc"
        assert asset.asset_class is AssetClass.CRYPTO
        assert asset.market_cap == 1e12

    def test_unknown_asset_class_defaults(self) -> None:
        """Test an unrecognised asset class falls back to equity."""
        asset = asset_from_mapping({"symbol": "O", "asset_class": "reit"})
        assert asset.asset_class is AssetClass.EQUITY

    def test_asset_without_symbol(self) -> None:
        """Test a missing symbol raises ValueError."""
        with pytest.raises(ValueError, match="no symbol"):
            asset_from_mapping({"name": "Nothing"})

    def test_events_from_rows(self) -> None:
        """Test events parse with defaults and upper-cased symbols."""
        events = events_from_rows(
            [
                {"type": "earnings", "title": "Q2", "scheduled_at": "2024-06-05", "symbol": "aaa"},
                {
                    "type": "fomc",
                    "title": "Rate decision",
                    "scheduled_at": "2024-06-12T18:00:00+00:00",
                    "importance": "high",
                    "expected_impact": "negative",
                },
            ]
        )
        assert events[0].symbol == "AAA"
        assert events[0].importance is EventImportance.MEDIUM
        assert events[0].expected_impact is ExpectedImpact.UNCERTAIN
        assert events[1].symbol is None
        assert events[1].importance is EventImportance.HIGH

    def test_unknown_event_enums_default(self) -> None:
        """Test unknown importance and impact fall back to medium and uncertain."""
        [event] = events_from_rows(
            [
                {
                    "type": "fda",
                    "title": "Ruling",
                    "scheduled_at": "2024-06-05",
                    "importance": "critical",
                    "expected_impact": "huge",
                }
            ]
        )
        assert event.importance is EventImportance.MEDIUM
        assert event.expected_impact is ExpectedImpact.UNCERTAIN

    def test_event_missing_fields(self) -> None:
        """Test missing required event fields raise ValueError."""
        with pytest.raises(ValueError, match="missing title"):
            events_from_rows([{"type": "earnings", "scheduled_at": "2024-06-05"}])

    def test_no_events(self) -> None:
        """Test None means no events."""
        assert events_from_rows(None) == []

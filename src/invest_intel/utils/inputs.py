"""Parsing of loose tool inputs into engine records."""

import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from invest_intel.models import (
    DEFAULT_IMPACT,
    DEFAULT_IMPORTANCE,
    Asset,
    EventImportance,
    ExpectedImpact,
    MarketEvent,
    parse_enum,
)
from invest_intel.utils.validators import parse_asset_class


def parse_datetime(value: str | datetime) -> datetime:
    """ISO string or datetime; naive values are taken as UTC."""
    moment = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


def asset_from_mapping(data: dict[str, Any]) -> Asset:
    """
    Build an Asset from a loose mapping.

    Raises:
        ValueError: If the symbol is missing
    """
    symbol = str(data.get("symbol") or "").strip()
    if not symbol:
        raise ValueError("Asset has no symbol")
    return Asset(
        symbol=symbol,
        name=str(data.get("name") or symbol),
        asset_class=parse_asset_class(data.get("asset_class")),
        exchange=str(data.get("exchange") or "NYSE"),
        sector=data.get("sector"),
        industry=data.get("industry"),
        market_cap=_optional_float(data.get("market_cap")),
        avg_volume=_optional_float(data.get("avg_volume")),
        price=_optional_float(data.get("price")),
    )


def events_from_rows(rows: Iterable[dict[str, Any]] | None) -> list[MarketEvent]:
    """
    Parse scheduled events.

    Each row needs 'type', 'title' and 'scheduled_at'. A row without a
    symbol is a market-wide event. Unknown importance or impact values fall
    back to medium and uncertain.

    Raises:
        ValueError: On a missing field
    """
    events: list[MarketEvent] = []
    for i, row in enumerate(rows or []):
        missing = [key for key in ("type", "title", "scheduled_at") if not row.get(key)]
        if missing:
            raise ValueError(f"Event {i} is missing {', '.join(missing)}")
        events.append(
            MarketEvent(
                id=str(row.get("id") or f"evt_{uuid.uuid4().hex[:12]}"),
                type=str(row["type"]),
                title=str(row["title"]),
                scheduled_at=parse_datetime(row["scheduled_at"]),
                importance=parse_enum(EventImportance, row.get("importance"), DEFAULT_IMPORTANCE),
                expected_impact=parse_enum(ExpectedImpact, row.get("expected_impact"), DEFAULT_IMPACT),
                symbol=str(row["symbol"]).upper() if row.get("symbol") else None,
                description=str(row.get("description") or ""),
            )
        )
    return events

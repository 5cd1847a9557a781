"""Opportunity digest tool."""

import asyncio
from time import perf_counter
from typing import Any

from invest_intel.alerts.digest import DigestConfig, DigestGenerator
from invest_intel.engine import OpportunityEngine
from invest_intel.models import utcnow
from invest_intel.tools.opportunity import scan_input_from_mapping
from invest_intel.utils.inputs import events_from_rows
from invest_intel.utils.normalize import to_jsonable
from invest_intel.utils.provenance import build_error_response, build_meta
from invest_intel.utils.validators import parse_asset_class, parse_timeframe

VALID_FORMATS = ("text", "html")

_engine = OpportunityEngine()
_digests = DigestGenerator()


async def build_digest(
    assets: list[dict[str, Any]],
    timeframe: str = "1d",
    events: list[dict[str, Any]] | None = None,
    max_opportunities: int = 10,
    min_score: float = 50,
    asset_classes: list[str] | None = None,
    output_format: str = "text",
) -> dict[str, Any]:
    """
    Scan a batch of assets and render the resulting digest.

    Args:
        assets: Asset mappings as accepted by score_opportunity
        timeframe: Bar timeframe shared by every series
        events: Optional scheduled events
        max_opportunities: Cap on opportunities in the digest
        min_score: Minimum opportunity score
        asset_classes: Optional asset class filter
        output_format: "text" or "html"

    Returns:
        Dict with the rendered digest, alerts, ranked symbols and scan failures
    """
    start_time = perf_counter()

    if output_format not in VALID_FORMATS:
        return build_error_response(
            error_type="invalid_parameters",
            message=f"Invalid output_format '{output_format}'. Must be one of: {list(VALID_FORMATS)}",
        )

    try:
        tf = parse_timeframe(timeframe)
        items = [scan_input_from_mapping(asset) for asset in assets]
        parsed_events = events_from_rows(events)
        config = DigestConfig(
            max_opportunities=int(max_opportunities),
            min_score=float(min_score),
            asset_classes=tuple(parse_asset_class(c) for c in asset_classes or []),
        )
    except (ValueError, TypeError, AttributeError) as e:
        return build_error_response(error_type="invalid_parameters", message=str(e))

    if not items:
        return build_error_response(
            error_type="insufficient_data",
            message="No assets supplied",
        )

    now = utcnow()
    loop = asyncio.get_running_loop()
    report = await loop.run_in_executor(None, lambda: _engine.scan(items, tf, parsed_events, now=now))

    digest = _digests.generate(report.opportunities, config, now)
    rendered = _digests.format_html(digest) if output_format == "html" else _digests.format_text(digest)

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "digest_id": digest.id,
        "format": output_format,
        "content": rendered,
        "alerts": digest.alerts,
        "ranked": [
            {
                "symbol": o.symbol,
                "score": round(o.opportunity_score, 1),
                "risk": round(o.risk_score, 1),
                "horizon": o.time_horizon,
            }
            for o in digest.opportunities
        ],
        "skipped": report.skipped,
        "failures": to_jsonable(report.failures),
        "meta": build_meta("build_digest", duration_ms),
    }

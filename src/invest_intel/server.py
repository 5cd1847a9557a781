"""Investment Intelligence MCP Server using FastMCP."""

import json
import logging
import os
from typing import Any

from fastmcp import FastMCP

from invest_intel import SCHEMA_VERSION, SERVER_VERSION
from invest_intel.tools import (
    analyze_fundamentals,
    build_digest,
    generate_signals,
    score_opportunity,
)

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, log_level, logging.INFO))
logger = logging.getLogger(__name__)

# Create FastMCP server instance
mcp = FastMCP(
    name="invest-intel",
)


# ============================================================================
# TOOLS
# ============================================================================


@mcp.tool
async def get_signals(
    symbol: str,
    bars: list[dict[str, Any]],
    timeframe: str = "1d",
    events: list[dict[str, Any]] | None = None,
) -> str:
    """
    Run momentum, mean-reversion, volatility, trend and event generators.

    Args:
        symbol: Ticker symbol
        bars: OHLCV rows (date/timestamp, open, high, low, close, volume), oldest first
        timeframe: Bar timeframe: 1m, 5m, 15m, 1h, 4h, 1d, 1w or 1M (default: 1d)
        events: Optional scheduled events (type, title, scheduled_at, importance,
            expected_impact, symbol)

    Returns:
        JSON with signals, volatility metrics and market regime
    """
    result = await generate_signals(symbol=symbol, bars=bars, timeframe=timeframe, events=events)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def get_fundamental_analysis(
    symbol: str,
    fundamentals: dict[str, Any],
    industry: str | None = None,
    price: float | None = None,
) -> str:
    """
    Score quality, valuation and growth from a fundamental snapshot.

    Args:
        symbol: Ticker symbol
        fundamentals: Ratios in percent units (pe, roe, debt_to_equity, revenue_growth, ...)
        industry: Optional industry for benchmark selection (technology, healthcare, ...)
        price: Optional current price for fair-value estimates

    Returns:
        JSON with quality grade, valuation assessment, growth profile, PEG and fair value
    """
    result = await analyze_fundamentals(
        symbol=symbol, fundamentals=fundamentals, industry=industry, price=price
    )
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def get_opportunity_score(
    asset: dict[str, Any],
    timeframe: str = "1d",
    events: list[dict[str, Any]] | None = None,
) -> str:
    """
    Score one asset into a risk-adjusted opportunity with a thesis.

    Args:
        asset: Asset with symbol, name, asset_class, sector, market_cap, avg_volume,
            bars, and optional fundamentals, catalysts and portfolio_weight
        timeframe: Bar timeframe (default: 1d)
        events: Optional scheduled events

    Returns:
        JSON with opportunity, risk assessment and one-line thesis
    """
    result = await score_opportunity(asset=asset, timeframe=timeframe, events=events)
    return json.dumps(result, indent=2, default=str)


@mcp.tool
async def get_opportunity_digest(
    assets: list[dict[str, Any]],
    timeframe: str = "1d",
    events: list[dict[str, Any]] | None = None,
    max_opportunities: int = 10,
    min_score: float = 50,
    asset_classes: list[str] | None = None,
    output_format: str = "text",
) -> str:
    """
    Scan a batch of assets and render a ranked opportunity digest.

    Args:
        assets: Asset mappings as accepted by get_opportunity_score
        timeframe: Bar timeframe shared by every series (default: 1d)
        events: Optional scheduled events
        max_opportunities: Maximum opportunities in the digest (default: 10)
        min_score: Minimum opportunity score (default: 50)
        asset_classes: Optional asset class filter (equity, crypto, etf, ...)
        output_format: "text" or "html" (default: text)

    Returns:
        JSON with rendered digest, alerts and ranked symbols
    """
    result = await build_digest(
        assets=assets,
        timeframe=timeframe,
        events=events,
        max_opportunities=max_opportunities,
        min_score=min_score,
        asset_classes=asset_classes,
        output_format=output_format,
    )
    return json.dumps(result, indent=2, default=str)


def main() -> None:
    """Run the MCP server."""
    logger.info(f"Starting Investment Intelligence MCP Server v{SERVER_VERSION} (schema v{SCHEMA_VERSION})")
    mcp.run()


if __name__ == "__main__":
    main()

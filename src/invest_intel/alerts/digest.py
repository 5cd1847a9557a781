"""Opportunity digests with plain-text and HTML renderings."""

import html
import logging
import os
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

import pytz

from invest_intel.models import AssetClass, Direction, Opportunity, utcnow

logger = logging.getLogger(__name__)

DIGEST_TZ = os.environ.get("DIGEST_TZ", "America/New_York")

BANNER = "=" * 60
HIGH_CONVICTION_SCORE = 75
HIGH_RISK_SCORE = 70
TIME_SENSITIVE_HORIZONS = ("Intraday", "1-3 Days")
TOP_PICK_COUNT = 3
SUMMARY_TITLE = "Executive Summary"
TOP_PICKS_TITLE = "Top Picks"
ALL_OPPORTUNITIES_TITLE = "All Opportunities"


@dataclass(frozen=True)
class DigestConfig:
    max_opportunities: int = 10
    min_score: float = 50
    include_risks: bool = True
    time_horizons: tuple[str, ...] = ()
    asset_classes: tuple[AssetClass, ...] = ()


@dataclass
class OpportunityDigest:
    id: str
    generated_at: datetime
    opportunities: list[Opportunity] = field(default_factory=list)
    top_picks: list[Opportunity] = field(default_factory=list)
    market_context: str = ""
    alerts: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DigestSection:
    title: str
    content: str
    opportunities: tuple[Opportunity, ...] = ()


def side_label(opportunity: Opportunity) -> str:
    return "LONG" if opportunity.is_long else "SHORT"


def format_timestamp(moment: datetime, tz: str = DIGEST_TZ) -> str:
    """Digest timestamp in the configured zone; naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        moment = pytz.utc.localize(moment)
    return moment.astimezone(pytz.timezone(tz)).strftime("%Y-%m-%d %H:%M:%S %Z")


def _net_lean(opportunity: Opportunity) -> int:
    longs = sum(1 for s in opportunity.signals if s.direction is Direction.LONG)
    shorts = sum(1 for s in opportunity.signals if s.direction is Direction.SHORT)
    return (longs > shorts) - (shorts > longs)


class DigestGenerator:
    """Filters and ranks opportunities and renders them for humans."""

    def __init__(self, config: DigestConfig | None = None, tz: str = DIGEST_TZ):
        self.config = config or DigestConfig()
        self.tz = tz

    def generate(
        self,
        opportunities: Sequence[Opportunity],
        config: DigestConfig | None = None,
        now: datetime | None = None,
    ) -> OpportunityDigest:
        """
        Build a digest.

        Opportunities below ``min_score`` or outside the optional horizon
        and asset-class filters are dropped; the rest are ranked by score.
        """
        cfg = config or self.config
        selected = [o for o in opportunities if o.opportunity_score >= cfg.min_score]
        if cfg.time_horizons:
            selected = [o for o in selected if o.time_horizon in cfg.time_horizons]
        if cfg.asset_classes:
            selected = [o for o in selected if o.asset.asset_class in cfg.asset_classes]

        selected.sort(key=lambda o: o.opportunity_score, reverse=True)
        ranked = selected[: cfg.max_opportunities]
        logger.debug("Digest keeps %d of %d opportunities", len(ranked), len(opportunities))

        return OpportunityDigest(
            id=f"digest_{uuid.uuid4().hex[:12]}",
            generated_at=now or utcnow(),
            opportunities=ranked,
            top_picks=selected[:TOP_PICK_COUNT],
            market_context=self.market_context(ranked),
            alerts=self.alerts(ranked, include_risks=cfg.include_risks),
        )

    def market_context(self, opportunities: Sequence[Opportunity]) -> str:
        if not opportunities:
            return "No significant opportunities identified at this time."

        longs = sum(1 for o in opportunities if _net_lean(o) > 0)
        shorts = sum(1 for o in opportunities if _net_lean(o) < 0)
        avg_score = sum(o.opportunity_score for o in opportunities) / len(opportunities)
        avg_risk = sum(o.risk_score for o in opportunities) / len(opportunities)

        parts = [f"Found {len(opportunities)} opportunities with average score of {avg_score:.0f}."]
        if longs > shorts * 2:
            parts.append("Market bias is strongly bullish.")
        elif shorts > longs * 2:
            parts.append("Market bias is strongly bearish.")
        elif longs > shorts:
            parts.append("Slight bullish bias in opportunities.")
        elif shorts > longs:
            parts.append("Slight bearish bias in opportunities.")
        else:
            parts.append("Mixed market signals.")

        if avg_risk > 60:
            parts.append("Risk levels are elevated - consider reduced position sizes.")
        elif avg_risk < 30:
            parts.append("Risk levels are low - favorable conditions for positioning.")
        return " ".join(parts)

    def alerts(self, opportunities: Sequence[Opportunity], include_risks: bool = True) -> list[str]:
        alerts: list[str] = []

        high_conviction = [o.symbol for o in opportunities if o.opportunity_score >= HIGH_CONVICTION_SCORE]
        if high_conviction:
            alerts.append(
                f"{len(high_conviction)} high-conviction opportunity(ies): {', '.join(high_conviction)}"
            )

        if include_risks:
            high_risk = [o.symbol for o in opportunities if o.risk_score >= HIGH_RISK_SCORE]
            if high_risk:
                alerts.append(
                    f"{len(high_risk)} opportunity(ies) with elevated risk: {', '.join(high_risk)}"
                )

        urgent = [o.symbol for o in opportunities if o.time_horizon in TIME_SENSITIVE_HORIZONS]
        if urgent:
            alerts.append(f"{len(urgent)} time-sensitive opportunity(ies): {', '.join(urgent)}")
        return alerts

    def sections(self, digest: OpportunityDigest) -> list[DigestSection]:
        """
        Structured view shared by both renderers.

        Executive summary, top picks, one section per asset class, one per
        time horizon (skipped when it would repeat the full list), then the
        full ranked list.
        """
        sections = [DigestSection(SUMMARY_TITLE, digest.market_context)]

        if digest.top_picks:
            sections.append(
                DigestSection(
                    TOP_PICKS_TITLE,
                    "Our highest conviction opportunities based on combined technical and fundamental analysis.",
                    tuple(digest.top_picks),
                )
            )

        by_class: dict[str, list[Opportunity]] = {}
        by_horizon: dict[str, list[Opportunity]] = {}
        for opp in digest.opportunities:
            by_class.setdefault(opp.asset.asset_class.value, []).append(opp)
            by_horizon.setdefault(opp.time_horizon, []).append(opp)

        for asset_class, opps in by_class.items():
            sections.append(
                DigestSection(
                    f"{asset_class.capitalize()} Opportunities",
                    f"{len(opps)} opportunities in {asset_class}",
                    tuple(opps),
                )
            )

        for horizon, opps in by_horizon.items():
            if len(opps) != len(digest.opportunities):
                sections.append(
                    DigestSection(
                        f"{horizon} Opportunities",
                        f"Opportunities with {horizon.lower()} time horizon",
                        tuple(opps),
                    )
                )

        if digest.opportunities:
            sections.append(
                DigestSection(
                    ALL_OPPORTUNITIES_TITLE,
                    f"{len(digest.opportunities)} ranked opportunities",
                    tuple(digest.opportunities),
                )
            )
        return sections

    def format_text(self, digest: OpportunityDigest) -> str:
        """Plain-text block layout over the same sections as ``format_html``."""
        by_title = {section.title: section for section in self.sections(digest)}
        lines = [
            BANNER,
            "OPPORTUNITY DIGEST",
            f"Generated: {format_timestamp(digest.generated_at, self.tz)}",
            BANNER,
            "",
        ]

        if digest.alerts:
            lines.append("ALERTS:")
            lines.extend(f"  {alert}" for alert in digest.alerts)
            lines.append("")

        lines.extend(["MARKET CONTEXT:", by_title[SUMMARY_TITLE].content, ""])

        top_picks = by_title.get(TOP_PICKS_TITLE)
        if top_picks is not None:
            lines.append("TOP PICKS:")
            for opp in top_picks.opportunities:
                lines.append(f"  {opp.symbol} - Score: {opp.opportunity_score:.0f} | {opp.thesis.summary}")
            lines.append("")

        lines.append("ALL OPPORTUNITIES:")
        ranked = by_title.get(ALL_OPPORTUNITIES_TITLE)
        for opp in ranked.opportunities if ranked is not None else ():
            lines.append(
                f"  {opp.symbol} | {side_label(opp)} | Score: {opp.opportunity_score:.0f} "
                f"| Risk: {opp.risk_score:.0f} | {opp.time_horizon}"
            )
        lines.extend(["", BANNER])
        return "\n".join(lines)

    def format_html(self, digest: OpportunityDigest) -> str:
        """HTML fragment; every caller-derived string is escaped."""
        esc = html.escape
        parts = [
            '<div class="opportunity-digest">',
            "<header>",
            "<h1>Opportunity Digest</h1>",
            f'<p class="timestamp">{esc(format_timestamp(digest.generated_at, self.tz))}</p>',
            "</header>",
        ]

        if digest.alerts:
            parts.append('<div class="alerts">')
            parts.extend(f'<div class="alert">{esc(alert)}</div>' for alert in digest.alerts)
            parts.append("</div>")

        for section in self.sections(digest):
            parts.append("<section>")
            parts.append(f"<h2>{esc(section.title)}</h2>")
            parts.append(f"<p>{esc(section.content)}</p>")
            if section.opportunities:
                parts.append('<ul class="opportunities">')
                for opp in section.opportunities:
                    parts.append(
                        "<li>"
                        f"<strong>{esc(opp.symbol)}</strong>"
                        f'<span class="score">Score: {opp.opportunity_score:.0f}</span>'
                        f'<span class="risk">Risk: {opp.risk_score:.0f}</span>'
                        f"<p>{esc(opp.thesis.summary)}</p>"
                        "</li>"
                    )
                parts.append("</ul>")
            parts.append("</section>")

        parts.append("</div>")
        return "\n".join(parts)

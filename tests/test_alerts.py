"""Tests for watchlist alerts and opportunity digests."""

import re
from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from invest_intel.alerts import (
    DigestConfig,
    DigestGenerator,
    WatchlistAlertManager,
    format_timestamp,
    opportunity_priority,
)
from invest_intel.alerts.digest import DigestSection, OpportunityDigest
from invest_intel.models import (
    AlertPriority,
    AlertType,
    AssetClass,
    Direction,
    Opportunity,
    Signal,
    WatchlistAlert,
)

OpportunityFactory = Callable[..., Opportunity]

TEXT_ROW = re.compile(r"^  (\S+) \| (?:LONG|SHORT) \| Score: (\d+) \| Risk: (\d+) \|", re.MULTILINE)
HTML_ROW = re.compile(
    r'<strong>([^<]+)</strong><span class="score">Score: (\d+)</span><span class="risk">Risk: (\d+)</span>'
)


class TestConditions:
    """Tests for standing alert conditions."""

    def test_crosses_above(self, now: datetime) -> None:
        """Test a crossing fires only when the previous value was below the threshold."""
        manager = WatchlistAlertManager()
        manager.create_condition("aaa", "price", "crosses-above", 100, now=now)

        fired = manager.check_price_conditions("AAA", 105, previous_price=95, now=now)
        assert len(fired) == 1
        assert fired[0].title == "AAA crosses-above 100"
        assert fired[0].priority is AlertPriority.HIGH

        assert manager.check_price_conditions("AAA", 110, previous_price=105, now=now) == []

    def test_crossing_needs_previous(self, now: datetime) -> None:
        """Test crossing operators never fire without a previous value."""
        manager = WatchlistAlertManager()
        manager.create_condition("AAA", "price", "crosses-below", 100, now=now)
        assert manager.check_price_conditions("AAA", 90, now=now) == []

    def test_repeat_interval(self, now: datetime) -> None:
        """Test a condition stays quiet inside its repeat interval."""
        manager = WatchlistAlertManager()
        manager.create_condition(
            "AAA", "price", ">", 100, repeat_interval=timedelta(milliseconds=3_600_000), now=now
        )

        assert len(manager.check_price_conditions("AAA", 101, now=now)) == 1
        soon = now + timedelta(milliseconds=1_000)
        assert manager.check_price_conditions("AAA", 101, now=soon) == []
        later = now + timedelta(milliseconds=3_700_000)
        assert len(manager.check_price_conditions("AAA", 101, now=later)) == 1

    def test_disabled_and_other_types_ignored(self, now: datetime) -> None:
        """Test disabled conditions and other alert types are skipped."""
        manager = WatchlistAlertManager()
        manager.create_condition("AAA", "price", ">", 100, enabled=False, now=now)
        manager.create_condition("AAA", "volume", ">", 100, alert_type=AlertType.VOLUME_SURGE, now=now)

        assert manager.check_price_conditions("AAA", 150, now=now) == []
        assert len(manager.check_conditions("AAA", AlertType.VOLUME_SURGE, 150, now=now)) == 1

    def test_condition_alerts_not_deduplicated(self, now: datetime) -> None:
        """Test each qualifying evaluation of a condition without an interval fires."""
        manager = WatchlistAlertManager()
        manager.create_condition("AAA", "price", ">", 100, now=now)

        manager.check_price_conditions("AAA", 101, now=now)
        manager.check_price_conditions("AAA", 102, now=now + timedelta(minutes=5))

        assert len(manager.alerts()) == 2

    def test_remove_and_list(self, now: datetime) -> None:
        """Test conditions can be listed per symbol and removed."""
        manager = WatchlistAlertManager()
        condition = manager.create_condition("AAA", "price", "<", 50, now=now)
        manager.create_condition("BBB", "price", "<", 50, now=now)

        assert [c.id for c in manager.conditions("aaa")] == [condition.id]
        assert manager.remove_condition(condition.id)
        assert not manager.remove_condition(condition.id)
        assert manager.conditions("AAA") == []

    def test_unknown_alert_type_defaults(self, now: datetime) -> None:
        """Test an unrecognised condition type falls back to a price target."""
        manager = WatchlistAlertManager()
        condition = manager.create_condition("AAA", "price", ">", 1.0, alert_type="bogus", now=now)

        assert condition.type is AlertType.PRICE_TARGET
        assert len(manager.check_price_conditions("AAA", 2.0, now=now)) == 1


class TestEventAlerts:
    """Tests for helper-generated alerts."""

    def test_signal_alert(self, make_signal: Callable[..., Signal], now: datetime) -> None:
        """Test signal alerts carry priority by strength and the signal expiry."""
        manager = WatchlistAlertManager()
        signal = make_signal(confidence=0.8)

        alert = manager.alert_on_signal(signal, now=now)

        assert alert.priority is AlertPriority.HIGH
        assert alert.title == "STRONG long signal on AAA"
        assert alert.message == "momentum signal detected with 80% confidence"
        assert alert.expires_at == signal.expires_at

    def test_weak_signal_low_priority(self, make_signal: Callable[..., Signal], now: datetime) -> None:
        """Test weak signals map to low priority."""
        alert = WatchlistAlertManager().alert_on_signal(make_signal(confidence=0.25), now=now)
        assert alert.priority is AlertPriority.LOW

    @pytest.mark.parametrize(
        "score,priority",
        [
            (75, AlertPriority.CRITICAL),
            (74.9, AlertPriority.HIGH),
            (60, AlertPriority.HIGH),
            (45, AlertPriority.MEDIUM),
            (44, AlertPriority.LOW),
        ],
    )
    def test_opportunity_priority(self, score: float, priority: AlertPriority) -> None:
        """Test opportunity score floors."""
        assert opportunity_priority(score) is priority

    def test_opportunity_alert(self, make_opportunity: OpportunityFactory, now: datetime) -> None:
        """Test opportunity alerts quote the score and thesis."""
        alert = WatchlistAlertManager().alert_on_opportunity(make_opportunity(score=82), now=now)
        assert alert.title == "New opportunity: AAA (Score: 82)"
        assert alert.message == "AAA setup. More detail follows."
        assert alert.priority is AlertPriority.CRITICAL

    def test_risk_and_thesis_always_critical(self, make_opportunity: OpportunityFactory, now: datetime) -> None:
        """Test risk-threshold and thesis-invalidation alerts are critical."""
        manager = WatchlistAlertManager()
        risk = manager.alert_on_risk_threshold("aaa", 82, 70, now=now)
        thesis = manager.alert_on_thesis_invalidation(make_opportunity(), "Support broke", now=now)

        assert risk.priority is AlertPriority.CRITICAL
        assert risk.message == "Risk level (82) exceeds threshold (70)"
        assert thesis.priority is AlertPriority.CRITICAL
        assert thesis.message == "Support broke"

    def test_volatility_spike(self, now: datetime) -> None:
        """Test spikes above double the average are critical."""
        alert = WatchlistAlertManager().alert_on_volatility_spike("AAA", 25, 10, now=now)
        assert alert.priority is AlertPriority.CRITICAL
        assert alert.message == "Volatility increased 150% above average"
        assert alert.details.increase == pytest.approx(150)

    def test_volatility_zero_average(self, now: datetime) -> None:
        """Test a zero average produces an alert without a ratio."""
        alert = WatchlistAlertManager().alert_on_volatility_spike("AAA", 25, 0, now=now)
        assert alert.priority is AlertPriority.HIGH
        assert alert.details.increase is None

    def test_duplicate_suppressed_until_acknowledged(self, now: datetime) -> None:
        """Test an identical active alert is returned instead of re-published."""
        manager = WatchlistAlertManager()
        first = manager.alert_on_risk_threshold("AAA", 80, 70, now=now)
        second = manager.alert_on_risk_threshold("AAA", 85, 70, now=now)

        assert second.id == first.id
        assert len(manager.alerts()) == 1

        assert manager.acknowledge(first.id, now=now)
        third = manager.alert_on_risk_threshold("AAA", 85, 70, now=now)
        assert third.id != first.id
        assert len(manager.alerts()) == 2


class TestSubscribers:
    """Tests for alert subscriptions."""

    def test_failing_subscriber_does_not_block_others(self, now: datetime) -> None:
        """Test one subscriber raising leaves delivery to the rest intact."""
        manager = WatchlistAlertManager()
        received: list[WatchlistAlert] = []

        def broken(alert: WatchlistAlert) -> None:
            raise RuntimeError("boom")

        manager.subscribe(broken)
        manager.subscribe(received.append)

        alert = manager.alert_on_risk_threshold("AAA", 80, 70, now=now)

        assert received == [alert]

    def test_unsubscribe(self, now: datetime) -> None:
        """Test unsubscribed callbacks stop receiving alerts."""
        manager = WatchlistAlertManager()
        received: list[WatchlistAlert] = []
        unsubscribe = manager.subscribe(received.append)

        manager.alert_on_risk_threshold("AAA", 80, 70, now=now)
        unsubscribe()
        manager.alert_on_risk_threshold("BBB", 80, 70, now=now)

        assert [a.symbol for a in received] == ["AAA"]


class TestAlertQueries:
    """Tests for alert queries and housekeeping."""

    def test_active_excludes_acknowledged_and_expired(self, now: datetime) -> None:
        """Test active means unacknowledged and unexpired."""
        manager = WatchlistAlertManager()
        manager.create_condition("AAA", "price", ">", 100, now=now)
        expiring = manager.check_price_conditions("AAA", 101, now=now)[0]
        acked = manager.alert_on_risk_threshold("BBB", 80, 70, now=now)
        kept = manager.alert_on_risk_threshold("CCC", 80, 70, now=now)
        manager.acknowledge(acked.id, now=now)

        later = now + timedelta(hours=25)
        assert {a.id for a in manager.active_alerts(now=now)} == {expiring.id, kept.id}
        assert [a.id for a in manager.active_alerts(now=later)] == [kept.id]
        assert [a.id for a in manager.alerts_by_priority(AlertPriority.CRITICAL, now=later)] == [kept.id]

    def test_acknowledge_unknown(self) -> None:
        """Test acknowledging an unknown id reports failure."""
        assert not WatchlistAlertManager().acknowledge("alert_missing")

    def test_clear_expired(self, now: datetime) -> None:
        """Test only expired alerts are removed."""
        manager = WatchlistAlertManager()
        manager.create_condition("AAA", "price", ">", 100, now=now)
        manager.check_price_conditions("AAA", 101, now=now)
        manager.alert_on_risk_threshold("BBB", 80, 70, now=now)

        assert manager.clear_expired_alerts(now=now) == 0
        assert manager.clear_expired_alerts(now=now + timedelta(hours=25)) == 1
        assert [a.symbol for a in manager.alerts()] == ["BBB"]

    def test_recent_alerts_newest_first(self, now: datetime) -> None:
        """Test recent alerts are windowed and sorted newest first."""
        manager = WatchlistAlertManager()
        manager.alert_on_risk_threshold("OLD", 80, 70, now=now - timedelta(hours=30))
        manager.alert_on_risk_threshold("MID", 80, 70, now=now - timedelta(hours=2))
        manager.alert_on_risk_threshold("NEW", 80, 70, now=now)

        assert [a.symbol for a in manager.recent_alerts(24, now=now)] == ["NEW", "MID"]


class TestDigestGenerator:
    """Tests for DigestGenerator."""

    def test_high_conviction_alert(self, make_opportunity: OpportunityFactory, now: datetime) -> None:
        """Test only scores of 75 or more land in the high-conviction bucket."""
        digest = DigestGenerator().generate(
            [make_opportunity("AAA", score=82, risk=40), make_opportunity("BBB", score=50)], now=now
        )

        high = [a for a in digest.alerts if "high-conviction" in a]
        assert high == ["1 high-conviction opportunity(ies): AAA"]
        assert "BBB" not in high[0]

    def test_filtering_and_ranking(self, make_opportunity: OpportunityFactory, now: datetime) -> None:
        """Test min score, asset class filter, ranking and top picks."""
        opportunities = [
            make_opportunity("AAA", score=60),
            make_opportunity("BBB", score=90),
            make_opportunity("CCC", score=40),
            make_opportunity("DDD", score=70, asset_class=AssetClass.CRYPTO),
            make_opportunity("EEE", score=80),
            make_opportunity("FFF", score=65),
        ]
        generator = DigestGenerator()

        digest = generator.generate(opportunities, now=now)
        assert [o.symbol for o in digest.opportunities] == ["BBB", "EEE", "DDD", "FFF", "AAA"]
        assert [o.symbol for o in digest.top_picks] == ["BBB", "EEE", "DDD"]

        equities = generator.generate(
            opportunities, DigestConfig(max_opportunities=2, asset_classes=(AssetClass.EQUITY,)), now=now
        )
        assert [o.symbol for o in equities.opportunities] == ["BBB", "EEE"]

    def test_time_sensitive_and_risk_alerts(self, make_opportunity: OpportunityFactory, now: datetime) -> None:
        """Test urgent horizons and high risk raise alerts unless risks are excluded."""
        opportunities = [make_opportunity("AAA", score=60, risk=75, horizon="Intraday")]
        generator = DigestGenerator()

        alerts = generator.generate(opportunities, now=now).alerts
        assert "1 opportunity(ies) with elevated risk: AAA" in alerts
        assert "1 time-sensitive opportunity(ies): AAA" in alerts

        quiet = generator.generate(opportunities, DigestConfig(include_risks=False), now=now).alerts
        assert not any("elevated risk" in a for a in quiet)

    def test_market_context(self, make_opportunity: OpportunityFactory, now: datetime) -> None:
        """Test bias and risk commentary in the context paragraph."""
        generator = DigestGenerator()
        bullish = generator.market_context([make_opportunity("AAA", risk=20), make_opportunity("BBB", risk=20)])
        assert "strongly bullish" in bullish
        assert "Risk levels are low" in bullish

        mixed = generator.market_context(
            [make_opportunity("AAA"), make_opportunity("BBB", direction=Direction.SHORT)]
        )
        assert "Mixed market signals." in mixed

        assert generator.market_context([]) == "No significant opportunities identified at this time."

    def test_text_layout(self, make_opportunity: OpportunityFactory, now: datetime) -> None:
        """Test the text digest sections and row format."""
        generator = DigestGenerator(tz="America/New_York")
        digest = generator.generate([make_opportunity("AAA", score=82, risk=40)], now=now)

        text = generator.format_text(digest)
        lines = text.splitlines()

        assert lines[0] == lines[-1] == "=" * 60
        assert "Generated: 2024-06-03 10:30:00 EDT" in lines
        assert "ALERTS:" in lines
        assert "MARKET CONTEXT:" in lines
        assert "  AAA - Score: 82 | AAA setup. More detail follows." in lines
        assert "  AAA | LONG | Score: 82 | Risk: 40 | 1-2 Weeks" in lines

    def test_html_escapes(self, make_opportunity: OpportunityFactory, now: datetime) -> None:
        """Test caller-supplied text is escaped in HTML."""
        generator = DigestGenerator()
        opp = make_opportunity("AAA", score=82)
        opp.thesis.summary = "<script>alert(1)</script>"
        html = generator.format_html(generator.generate([opp], now=now))

        assert html.startswith('<div class="opportunity-digest">')
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert '<div class="alerts">' in html

    def test_text_and_html_agree(self, make_opportunity: OpportunityFactory, now: datetime) -> None:
        """Test symbol, score and risk rows extracted from both renderings match."""
        opportunities = [
            make_opportunity("AAA", score=82, risk=40),
            make_opportunity("BBB", score=67, risk=55, asset_class=AssetClass.CRYPTO, horizon="1-3 Days"),
            make_opportunity("CCC", score=58, risk=71, direction=Direction.SHORT),
            make_opportunity("DDD", score=91, risk=22, asset_class=AssetClass.ETF),
        ]
        generator = DigestGenerator()
        digest = generator.generate(opportunities, now=now)

        text = generator.format_text(digest)
        html = generator.format_html(digest)

        text_rows = TEXT_ROW.findall(text.split("ALL OPPORTUNITIES:")[1])
        html_rows = HTML_ROW.findall(html.split("<h2>All Opportunities</h2>")[1])

        assert text_rows == html_rows
        assert [row[0] for row in text_rows] == ["DDD", "AAA", "BBB", "CCC"]

    def test_renderers_share_sections(self, make_opportunity: OpportunityFactory, now: datetime) -> None:
        """Test both renderings follow the section list rather than the raw digest."""

        class TrimmedDigestGenerator(DigestGenerator):
            def sections(self, digest: OpportunityDigest) -> list[DigestSection]:
                return [
                    DigestSection("Executive Summary", "Quiet session."),
                    DigestSection("All Opportunities", "Leader only", tuple(digest.opportunities[:1])),
                ]

        generator = TrimmedDigestGenerator()
        digest = generator.generate(
            [make_opportunity("AAA", score=82), make_opportunity("BBB", score=67)], now=now
        )

        text = generator.format_text(digest)
        html = generator.format_html(digest)

        assert "Quiet session." in text
        assert "TOP PICKS:" not in text
        assert [row[0] for row in TEXT_ROW.findall(text)] == ["AAA"]
        assert [row[0] for row in HTML_ROW.findall(html)] == ["AAA"]

    def test_sections(self, make_opportunity: OpportunityFactory, now: datetime) -> None:
        """Test per-class and per-horizon sections group the ranked list."""
        generator = DigestGenerator()
        digest = generator.generate(
            [
                make_opportunity("AAA", score=80),
                make_opportunity("BBB", score=70, asset_class=AssetClass.CRYPTO, horizon="1-3 Days"),
            ],
            now=now,
        )
        titles = [s.title for s in generator.sections(digest)]

        assert titles == [
            "Executive Summary",
            "Top Picks",
            "Equity Opportunities",
            "Crypto Opportunities",
            "1-2 Weeks Opportunities",
            "1-3 Days Opportunities",
            "All Opportunities",
        ]

    def test_format_timestamp_naive_is_utc(self) -> None:
        """Test naive datetimes render as UTC moments."""
        assert format_timestamp(datetime(2024, 1, 15, 17, 0), "America/New_York") == "2024-01-15 12:00:00 EST"

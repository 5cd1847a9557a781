"""Standing alert conditions and pushed watchlist alerts."""

import dataclasses
import logging
import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta

from invest_intel.memory.repository import InMemoryStore, Store
from invest_intel.models import (
    DEFAULT_ALERT_TYPE,
    AlertCondition,
    AlertPriority,
    AlertType,
    ComparisonOperator,
    ConditionAlertDetails,
    Opportunity,
    OpportunityAlertDetails,
    RiskAlertDetails,
    Signal,
    SignalAlertDetails,
    SignalStrength,
    ThesisAlertDetails,
    VolatilityAlertDetails,
    WatchlistAlert,
    parse_enum,
    utcnow,
)
from invest_intel.utils.validators import evaluate_operator

logger = logging.getLogger(__name__)

CONDITION_ALERT_TTL = timedelta(hours=24)

Subscriber = Callable[[WatchlistAlert], None]

SIGNAL_PRIORITY: dict[SignalStrength, AlertPriority] = {
    SignalStrength.STRONG: AlertPriority.HIGH,
    SignalStrength.MODERATE: AlertPriority.MEDIUM,
}

# (score floor, priority)
OPPORTUNITY_PRIORITY: tuple[tuple[float, AlertPriority], ...] = (
    (75, AlertPriority.CRITICAL),
    (60, AlertPriority.HIGH),
    (45, AlertPriority.MEDIUM),
)


def opportunity_priority(score: float) -> AlertPriority:
    for floor, priority in OPPORTUNITY_PRIORITY:
        if score >= floor:
            return priority
    return AlertPriority.LOW


def _alert_id() -> str:
    return f"alert_{uuid.uuid4().hex[:12]}"


class WatchlistAlertManager:
    """
    Evaluates standing conditions and publishes alerts to subscribers.

    Helper alerts (signal, opportunity, risk, volatility, thesis) are not
    re-emitted while an identical active alert (same type, symbol and
    title) exists. Condition alerts are throttled by the condition's
    repeat interval instead.
    """

    def __init__(self, alerts: Store | None = None, conditions: Store | None = None):
        self._alerts = alerts if alerts is not None else InMemoryStore()
        self._conditions = conditions if conditions is not None else InMemoryStore()
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, alert: WatchlistAlert) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber(alert)
            except Exception as e:
                logger.warning("Alert subscriber %r failed on %s: %s", subscriber, alert.id, e)

    def _publish(self, alert: WatchlistAlert, dedupe: bool = True) -> WatchlistAlert:
        with self._lock:
            if dedupe:
                for existing in self._alerts.values():
                    if (
                        existing.type is alert.type
                        and existing.symbol == alert.symbol
                        and existing.title == alert.title
                        and existing.is_active(alert.created_at)
                    ):
                        logger.debug("Suppressed duplicate alert %r", alert.title)
                        return existing
            self._alerts.put(alert.id, alert)

        logger.info("Alert [%s] %s", alert.priority.value, alert.title)
        self._notify(alert)
        return alert

    # ------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------

    def create_condition(
        self,
        symbol: str,
        metric: str,
        operator: ComparisonOperator | str,
        value: float,
        alert_type: AlertType | str = AlertType.PRICE_TARGET,
        repeat_interval: timedelta | None = None,
        enabled: bool = True,
        now: datetime | None = None,
    ) -> AlertCondition:
        condition = AlertCondition(
            id=f"cond_{uuid.uuid4().hex[:12]}",
            symbol=symbol,
            type=parse_enum(AlertType, alert_type, DEFAULT_ALERT_TYPE),
            metric=metric,
            operator=ComparisonOperator(operator),
            value=value,
            enabled=enabled,
            created_at=now or utcnow(),
            repeat_interval=repeat_interval,
        )
        with self._lock:
            self._conditions.put(condition.id, condition)
        return condition

    def remove_condition(self, condition_id: str) -> bool:
        with self._lock:
            return self._conditions.delete(condition_id)

    def conditions(self, symbol: str | None = None) -> list[AlertCondition]:
        conditions = self._conditions.values()
        if symbol:
            conditions = [c for c in conditions if c.symbol == symbol.upper()]
        return conditions

    def should_trigger(
        self,
        condition: AlertCondition,
        current: float,
        previous: float | None = None,
        now: datetime | None = None,
    ) -> bool:
        """
        True if the condition holds and is outside its repeat interval.

        Crossing operators need a previous value and never fire without one.
        """
        now = now or utcnow()
        if (
            condition.last_triggered is not None
            and condition.repeat_interval is not None
            and now - condition.last_triggered < condition.repeat_interval
        ):
            return False
        return evaluate_operator(condition.operator, current, condition.value, previous)

    def check_conditions(
        self,
        symbol: str,
        alert_type: AlertType,
        current: float,
        previous: float | None = None,
        now: datetime | None = None,
    ) -> list[WatchlistAlert]:
        """Evaluate enabled conditions of one type for a symbol; returns fired alerts."""
        now = now or utcnow()
        symbol = symbol.upper()
        fired: list[WatchlistAlert] = []

        with self._lock:
            candidates = [
                c
                for c in self._conditions.values()
                if c.symbol == symbol and c.enabled and c.type is alert_type
            ]
            triggered = []
            for condition in candidates:
                if self.should_trigger(condition, current, previous, now):
                    condition.last_triggered = now
                    self._conditions.put(condition.id, condition)
                    triggered.append(condition)

        for condition in triggered:
            op = condition.operator.value
            alert = WatchlistAlert(
                id=_alert_id(),
                type=condition.type,
                priority=AlertPriority.HIGH,
                symbol=condition.symbol,
                title=f"{condition.symbol} {op} {condition.value:g}",
                message=(
                    f"{condition.symbol} {condition.metric} is now {current:.2f} "
                    f"({op} {condition.value:g})"
                ),
                created_at=now,
                details=ConditionAlertDetails(condition.id, current, condition.value),
                expires_at=now + CONDITION_ALERT_TTL,
            )
            fired.append(self._publish(alert, dedupe=False))
        return fired

    def check_price_conditions(
        self,
        symbol: str,
        current_price: float,
        previous_price: float | None = None,
        now: datetime | None = None,
    ) -> list[WatchlistAlert]:
        return self.check_conditions(symbol, AlertType.PRICE_TARGET, current_price, previous_price, now)

    # ------------------------------------------------------------------
    # Event alerts
    # ------------------------------------------------------------------

    def alert_on_signal(self, signal: Signal, now: datetime | None = None) -> WatchlistAlert:
        alert = WatchlistAlert(
            id=_alert_id(),
            type=AlertType.SIGNAL_GENERATED,
            priority=SIGNAL_PRIORITY.get(signal.strength, AlertPriority.LOW),
            symbol=signal.symbol,
            title=f"{signal.strength.value.upper()} {signal.direction.value} signal on {signal.symbol}",
            message=(
                f"{signal.type.value} signal detected with "
                f"{signal.confidence * 100:.0f}% confidence"
            ),
            created_at=now or utcnow(),
            details=SignalAlertDetails(signal.id, signal.type, signal.confidence),
            expires_at=signal.expires_at,
        )
        return self._publish(alert)

    def alert_on_opportunity(self, opportunity: Opportunity, now: datetime | None = None) -> WatchlistAlert:
        alert = WatchlistAlert(
            id=_alert_id(),
            type=AlertType.OPPORTUNITY_FOUND,
            priority=opportunity_priority(opportunity.opportunity_score),
            symbol=opportunity.symbol,
            title=f"New opportunity: {opportunity.symbol} (Score: {opportunity.opportunity_score:.0f})",
            message=opportunity.thesis.summary,
            created_at=now or utcnow(),
            details=OpportunityAlertDetails(opportunity.id, opportunity.opportunity_score),
        )
        return self._publish(alert)

    def alert_on_risk_threshold(
        self,
        symbol: str,
        risk_level: float,
        threshold: float,
        now: datetime | None = None,
    ) -> WatchlistAlert:
        symbol = symbol.upper()
        alert = WatchlistAlert(
            id=_alert_id(),
            type=AlertType.RISK_THRESHOLD,
            priority=AlertPriority.CRITICAL,
            symbol=symbol,
            title=f"Risk threshold exceeded: {symbol}",
            message=f"Risk level ({risk_level:.0f}) exceeds threshold ({threshold:g})",
            created_at=now or utcnow(),
            details=RiskAlertDetails(risk_level, threshold),
        )
        return self._publish(alert)

    def alert_on_volatility_spike(
        self,
        symbol: str,
        current_vol: float,
        avg_vol: float,
        now: datetime | None = None,
    ) -> WatchlistAlert:
        """Spike against the average; above +100% is critical. A zero average has no ratio."""
        symbol = symbol.upper()
        if avg_vol > 0:
            increase: float | None = (current_vol - avg_vol) / avg_vol * 100
            message = f"Volatility increased {increase:.0f}% above average"
            priority = AlertPriority.CRITICAL if increase > 100 else AlertPriority.HIGH
        else:
            increase = None
            message = f"Volatility at {current_vol:.2f} with no average to compare against"
            priority = AlertPriority.HIGH

        alert = WatchlistAlert(
            id=_alert_id(),
            type=AlertType.VOLATILITY_SPIKE,
            priority=priority,
            symbol=symbol,
            title=f"Volatility spike: {symbol}",
            message=message,
            created_at=now or utcnow(),
            details=VolatilityAlertDetails(current_vol, avg_vol, increase),
        )
        return self._publish(alert)

    def alert_on_thesis_invalidation(
        self,
        opportunity: Opportunity,
        reason: str,
        now: datetime | None = None,
    ) -> WatchlistAlert:
        alert = WatchlistAlert(
            id=_alert_id(),
            type=AlertType.THESIS_INVALIDATED,
            priority=AlertPriority.CRITICAL,
            symbol=opportunity.symbol,
            title=f"Thesis invalidated: {opportunity.symbol}",
            message=reason,
            created_at=now or utcnow(),
            details=ThesisAlertDetails(opportunity.id, reason),
        )
        return self._publish(alert)

    # ------------------------------------------------------------------
    # Queries and housekeeping
    # ------------------------------------------------------------------

    def acknowledge(self, alert_id: str, now: datetime | None = None) -> bool:
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                return False
            self._alerts.put(
                alert_id,
                dataclasses.replace(alert, acknowledged=True, acknowledged_at=now or utcnow()),
            )
        return True

    def alerts(self) -> list[WatchlistAlert]:
        return self._alerts.values()

    def active_alerts(self, symbol: str | None = None, now: datetime | None = None) -> list[WatchlistAlert]:
        now = now or utcnow()
        active = [a for a in self._alerts.values() if a.is_active(now)]
        if symbol:
            active = [a for a in active if a.symbol == symbol.upper()]
        return active

    def alerts_by_priority(self, priority: AlertPriority, now: datetime | None = None) -> list[WatchlistAlert]:
        return [a for a in self.active_alerts(now=now) if a.priority is priority]

    def recent_alerts(self, hours: float = 24, now: datetime | None = None) -> list[WatchlistAlert]:
        cutoff = (now or utcnow()) - timedelta(hours=hours)
        recent = [a for a in self._alerts.values() if a.created_at >= cutoff]
        return sorted(recent, key=lambda a: a.created_at, reverse=True)

    def clear_expired_alerts(self, now: datetime | None = None) -> int:
        """Remove every expired alert, acknowledged or not; returns how many."""
        now = now or utcnow()
        with self._lock:
            expired = [a.id for a in self._alerts.values() if a.is_expired(now)]
            for alert_id in expired:
                self._alerts.delete(alert_id)
        return len(expired)

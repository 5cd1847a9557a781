"""Core data model: assets, bars, signals, opportunities, theses and alerts."""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, TypeVar, Union

logger = logging.getLogger(__name__)


class InvestIntelError(Exception):
    """Base class for engine errors."""


class InvalidTransitionError(InvestIntelError):
    """Raised when a record is moved out of a terminal state."""


# ============================================================================
# ENUMERATIONS
# ============================================================================


class AssetClass(str, Enum):
    EQUITY = "equity"
    CRYPTO = "crypto"
    ETF = "etf"
    BOND = "bond"
    COMMODITY = "commodity"
    FOREX = "forex"


class Timeframe(str, Enum):
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1w"
    MN1 = "1M"


class SignalType(str, Enum):
    MOMENTUM = "momentum"
    MEAN_REVERSION = "mean-reversion"
    TREND_FOLLOWING = "trend-following"
    VOLATILITY_BREAKOUT = "volatility-breakout"
    EVENT_DRIVEN = "event-driven"
    FUNDAMENTAL = "fundamental"


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"
    NEUTRAL = "neutral"


class SignalStrength(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    NEUTRAL = "neutral"


class MarketRegime(str, Enum):
    BULL = "bull"
    BEAR = "bear"
    SIDEWAYS = "sideways"
    VOLATILE = "volatile"
    LOW_VOLATILITY = "low-volatility"


class RiskLevel(str, Enum):
    VERY_LOW = "very-low"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very-high"


class OpportunityStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    INVALIDATED = "invalidated"
    EXECUTED = "executed"


class ThesisOutcome(str, Enum):
    PENDING = "pending"
    WIN = "win"
    LOSS = "loss"
    PARTIAL = "partial"


class PriceDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class AlertType(str, Enum):
    PRICE_TARGET = "price-target"
    SIGNAL_GENERATED = "signal-generated"
    OPPORTUNITY_FOUND = "opportunity-found"
    RISK_THRESHOLD = "risk-threshold"
    VOLATILITY_SPIKE = "volatility-spike"
    VOLUME_SURGE = "volume-surge"
    EARNINGS_UPCOMING = "earnings-upcoming"
    THESIS_INVALIDATED = "thesis-invalidated"


class AlertPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ComparisonOperator(str, Enum):
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    EQ = "=="
    CROSSES_ABOVE = "crosses-above"
    CROSSES_BELOW = "crosses-below"


class EventImportance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ExpectedImpact(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    UNCERTAIN = "uncertain"


class GuidanceChange(str, Enum):
    RAISED = "raised"
    LOWERED = "lowered"
    MAINTAINED = "maintained"
    WITHDRAWN = "withdrawn"


# ============================================================================
# HELPERS
# ============================================================================


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


E = TypeVar("E", bound=Enum)

# Defaults for unrecognised enum values at the input boundary
DEFAULT_ASSET_CLASS = AssetClass.EQUITY
DEFAULT_ALERT_TYPE = AlertType.PRICE_TARGET
DEFAULT_IMPORTANCE = EventImportance.MEDIUM
DEFAULT_IMPACT = ExpectedImpact.UNCERTAIN


def parse_enum(enum_cls: type[E], value: Any, default: E) -> E:
    """
    Lenient enum lookup.

    Matches member values exactly, then case-insensitively. None and
    unknown values fall back to ``default``.
    """
    if isinstance(value, enum_cls):
        return value
    if value is None:
        return default
    cleaned = str(value).strip()
    by_value = {str(member.value): member for member in enum_cls}
    if cleaned in by_value:
        return by_value[cleaned]
    for key, member in by_value.items():
        if key.lower() == cleaned.lower():
            return member
    logger.debug("Unknown %s %r, using %s", enum_cls.__name__, value, default.value)
    return default


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    """Clamp a score into [low, high]."""
    return max(low, min(high, value))


def strength_from_confidence(confidence: float) -> SignalStrength:
    """Map a confidence in [0, 1] to a signal strength bucket."""
    if confidence >= 0.7:
        return SignalStrength.STRONG
    if confidence >= 0.4:
        return SignalStrength.MODERATE
    if confidence >= 0.2:
        return SignalStrength.WEAK
    return SignalStrength.NEUTRAL


def _coerce_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


# ============================================================================
# REFERENCE DATA
# ============================================================================


@dataclass(frozen=True)
class Asset:
    """Tradable instrument. Symbol is normalised to upper case."""

    symbol: str
    name: str
    asset_class: AssetClass = AssetClass.EQUITY
    exchange: str = "NYSE"
    sector: str | None = None
    industry: str | None = None
    market_cap: float | None = None
    avg_volume: float | None = None
    price: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbol", self.symbol.upper().strip())
        if not isinstance(self.asset_class, AssetClass):
            asset_class = parse_enum(AssetClass, self.asset_class, DEFAULT_ASSET_CLASS)
            object.__setattr__(self, "asset_class", asset_class)


@dataclass(frozen=True)
class PriceBar:
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


# camelCase aliases accepted by FundamentalSnapshot.from_mapping
_FUNDAMENTAL_ALIASES = {
    "forwardPe": "forward_pe",
    "evToEbitda": "ev_to_ebitda",
    "debtToEquity": "debt_to_equity",
    "currentRatio": "current_ratio",
    "quickRatio": "quick_ratio",
    "grossMargin": "gross_margin",
    "operatingMargin": "operating_margin",
    "netMargin": "net_margin",
    "revenueGrowth": "revenue_growth",
    "earningsGrowth": "earnings_growth",
    "fcfYield": "fcf_yield",
    "dividendYield": "dividend_yield",
}


@dataclass(frozen=True)
class FundamentalSnapshot:
    """
    Optional fundamental ratios for one symbol.

    Margins, returns, growth rates and yields are in percent units
    (ROE of 18.5 means 18.5%). Any field may be None.
    """

    pe: float | None = None
    forward_pe: float | None = None
    peg: float | None = None
    pb: float | None = None
    ps: float | None = None
    ev_to_ebitda: float | None = None
    debt_to_equity: float | None = None
    current_ratio: float | None = None
    quick_ratio: float | None = None
    roe: float | None = None
    roa: float | None = None
    roic: float | None = None
    gross_margin: float | None = None
    operating_margin: float | None = None
    net_margin: float | None = None
    revenue_growth: float | None = None
    earnings_growth: float | None = None
    fcf_yield: float | None = None
    dividend_yield: float | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> "FundamentalSnapshot":
        """
        Build a snapshot from a loose mapping.

        Accepts camelCase or snake_case keys. Unknown keys are ignored and
        NaN, inf or non-numeric values become None.
        """
        if not data:
            return cls()
        fields_ = set(cls.__dataclass_fields__)
        values: dict[str, float | None] = {}
        for key, raw in data.items():
            name = _FUNDAMENTAL_ALIASES.get(key, key)
            if name in fields_:
                values[name] = _coerce_float(raw)
        return cls(**values)

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in self.__dataclass_fields__)


# ============================================================================
# SIGNAL METADATA
# ============================================================================


@dataclass(frozen=True)
class MacdReading:
    value: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class StochasticReading:
    k: float
    d: float


@dataclass(frozen=True)
class BandReading:
    """Bollinger band snapshot. Bandwidth in percent of the middle band."""

    upper: float
    middle: float
    lower: float
    bandwidth: float
    percent_b: float


@dataclass(frozen=True)
class ChannelReading:
    upper: float
    middle: float
    lower: float


@dataclass(frozen=True)
class Overextension:
    is_overextended: bool
    direction: str  # "overbought" | "oversold" | "neutral"
    magnitude: float


@dataclass(frozen=True)
class VolatilityMetrics:
    """Volatility snapshot. HV and ATR% are percentages."""

    historical_volatility: float
    atr: float
    atr_percent: float
    atr_ratio: float
    regime: MarketRegime
    is_expanding: bool
    is_contracting: bool


@dataclass(frozen=True)
class MovingAverageCrossover:
    fast: float | None
    slow: float | None
    crossover: str  # "golden" | "death" | "none"
    recent_cross: bool


@dataclass(frozen=True)
class TrendStructure:
    trend: str  # "up" | "down" | "sideways"
    strength: float
    higher_highs: bool
    higher_lows: bool
    lower_highs: bool
    lower_lows: bool


@dataclass(frozen=True)
class Breakout:
    direction: str  # "up" | "down" | "none"
    strength: float
    level: float | None


@dataclass(frozen=True)
class MomentumMetadata:
    rsi: float | None
    macd: MacdReading | None
    stochastic: StochasticReading | None
    roc: float | None
    adx: float | None
    plus_di: float | None
    minus_di: float | None
    kind: str = field(default="momentum", init=False)


@dataclass(frozen=True)
class MeanReversionMetadata:
    bollinger: BandReading
    z_score: float
    keltner: ChannelReading | None
    overextension: Overextension
    squeeze: bool
    kind: str = field(default="mean-reversion", init=False)


@dataclass(frozen=True)
class VolatilityMetadata:
    metrics: VolatilityMetrics
    setup: str  # "breakout" | "continuation" | "reversion"
    range_position: float | None
    kind: str = field(default="volatility", init=False)


@dataclass(frozen=True)
class TrendMetadata:
    crossover: MovingAverageCrossover
    structure: TrendStructure
    adx: float | None
    breakout: Breakout
    kind: str = field(default="trend", init=False)


@dataclass(frozen=True)
class EventMetadata:
    events: tuple[str, ...]
    event_count: int
    aggregate_score: float
    kind: str = field(default="event", init=False)


SignalMetadata = Union[
    MomentumMetadata,
    MeanReversionMetadata,
    VolatilityMetadata,
    TrendMetadata,
    EventMetadata,
]


@dataclass(frozen=True)
class Signal:
    """
    Directional read from one analysis method.

    Strength is always derived from confidence; confidence is clamped
    to [0, 1] on construction.
    """

    id: str
    symbol: str
    type: SignalType
    direction: Direction
    confidence: float
    timeframe: Timeframe
    generated_at: datetime
    expires_at: datetime | None = None
    metadata: SignalMetadata | None = None
    strength: SignalStrength = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "symbol", self.symbol.upper().strip())
        object.__setattr__(self, "confidence", clamp(float(self.confidence), 0.0, 1.0))
        object.__setattr__(self, "strength", strength_from_confidence(self.confidence))

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at < (now or utcnow())


# ============================================================================
# EVENTS
# ============================================================================


@dataclass(frozen=True)
class MarketEvent:
    """Scheduled event. A symbol of None marks a market-wide event."""

    id: str
    type: str
    title: str
    scheduled_at: datetime
    importance: EventImportance = EventImportance.MEDIUM
    expected_impact: ExpectedImpact = ExpectedImpact.UNCERTAIN
    symbol: str | None = None
    description: str = ""

    def __post_init__(self) -> None:
        importance = parse_enum(EventImportance, self.importance, DEFAULT_IMPORTANCE)
        impact = parse_enum(ExpectedImpact, self.expected_impact, DEFAULT_IMPACT)
        object.__setattr__(self, "importance", importance)
        object.__setattr__(self, "expected_impact", impact)


@dataclass(frozen=True)
class EarningsData:
    symbol: str
    report_date: datetime
    eps_estimate: float
    revenue_estimate: float
    fiscal_quarter: str = ""
    eps_actual: float | None = None
    revenue_actual: float | None = None
    surprise: float | None = None  # EPS surprise, percent
    guidance: GuidanceChange | None = None


@dataclass(frozen=True)
class MacroEvent:
    type: str
    name: str
    scheduled_at: datetime
    importance: EventImportance = EventImportance.MEDIUM
    previous: float | None = None
    forecast: float | None = None
    actual: float | None = None


@dataclass(frozen=True)
class EventRead:
    """Directional read produced by the earnings helpers."""

    direction: Direction
    confidence: float
    rationale: str


@dataclass(frozen=True)
class MacroImpact:
    direction: ExpectedImpact
    magnitude: float


# ============================================================================
# OPPORTUNITIES & THESES
# ============================================================================


@dataclass
class InvestmentThesis:
    summary: str
    bull_case: list[str] = field(default_factory=list)
    bear_case: list[str] = field(default_factory=list)
    catalysts: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)
    confidence: float = 0.5
    target_price: float | None = None
    stop_loss: float | None = None


_TERMINAL_STATUSES = {
    OpportunityStatus.EXPIRED,
    OpportunityStatus.INVALIDATED,
    OpportunityStatus.EXECUTED,
}


@dataclass
class Opportunity:
    """Ranked candidate. Status moves from active to one terminal state."""

    id: str
    symbol: str
    asset: Asset
    signals: list[Signal]
    thesis: InvestmentThesis
    opportunity_score: float
    risk_score: float
    expected_return: float
    time_horizon: str
    invalidation_conditions: list[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=utcnow)
    status: OpportunityStatus = OpportunityStatus.ACTIVE

    def transition(self, status: OpportunityStatus) -> None:
        """
        Move to a terminal status.

        Raises:
            InvalidTransitionError: If already terminal or target is not terminal
        """
        if self.status is not OpportunityStatus.ACTIVE:
            raise InvalidTransitionError(
                f"Opportunity {self.id} is already {self.status.value}"
            )
        if status not in _TERMINAL_STATUSES:
            raise InvalidTransitionError(
                f"Cannot move opportunity {self.id} to {status.value}"
            )
        self.status = status

    @property
    def is_long(self) -> bool:
        longs = sum(1 for s in self.signals if s.direction is Direction.LONG)
        shorts = sum(1 for s in self.signals if s.direction is Direction.SHORT)
        return longs >= shorts


@dataclass
class ThesisRecord:
    """Outcome wrapper for one opportunity. closed_at is set iff outcome is not pending."""

    id: str
    opportunity: Opportunity
    created_at: datetime
    outcome: ThesisOutcome = ThesisOutcome.PENDING
    actual_return: float | None = None
    holding_period: float | None = None  # days
    lessons: list[str] = field(default_factory=list)
    closed_at: datetime | None = None

    def close(
        self,
        outcome: ThesisOutcome,
        actual_return: float,
        lessons: list[str] | None = None,
        now: datetime | None = None,
    ) -> None:
        """
        Close the record exactly once.

        Raises:
            InvalidTransitionError: If already closed or outcome is pending
        """
        if self.outcome is not ThesisOutcome.PENDING:
            raise InvalidTransitionError(f"Thesis {self.id} is already closed")
        if outcome is ThesisOutcome.PENDING:
            raise InvalidTransitionError(f"Cannot close thesis {self.id} as pending")
        closed_at = now or utcnow()
        self.outcome = outcome
        self.actual_return = actual_return
        self.lessons = list(lessons or [])
        self.closed_at = closed_at
        self.holding_period = (closed_at - self.created_at) / timedelta(days=1)


@dataclass(frozen=True)
class SignalOutcome:
    signal: Signal
    actual_direction: PriceDirection
    actual_return: float
    holding_period: float  # hours
    peak_return: float
    drawdown: float
    closed_at: datetime

    @property
    def success(self) -> bool:
        expected = {
            Direction.LONG: PriceDirection.UP,
            Direction.SHORT: PriceDirection.DOWN,
            Direction.NEUTRAL: PriceDirection.FLAT,
        }
        return expected[self.signal.direction] is self.actual_direction


# ============================================================================
# ALERTS
# ============================================================================


@dataclass(frozen=True)
class ConditionAlertDetails:
    condition_id: str
    current_value: float
    threshold: float


@dataclass(frozen=True)
class SignalAlertDetails:
    signal_id: str
    signal_type: SignalType
    confidence: float


@dataclass(frozen=True)
class OpportunityAlertDetails:
    opportunity_id: str
    score: float


@dataclass(frozen=True)
class RiskAlertDetails:
    risk_level: float
    threshold: float


@dataclass(frozen=True)
class VolatilityAlertDetails:
    current_vol: float
    avg_vol: float
    increase: float | None


@dataclass(frozen=True)
class ThesisAlertDetails:
    opportunity_id: str
    reason: str


AlertDetails = Union[
    ConditionAlertDetails,
    SignalAlertDetails,
    OpportunityAlertDetails,
    RiskAlertDetails,
    VolatilityAlertDetails,
    ThesisAlertDetails,
]


@dataclass(frozen=True)
class WatchlistAlert:
    """Alert notification. Acknowledging produces a replaced copy."""

    id: str
    type: AlertType
    priority: AlertPriority
    symbol: str
    title: str
    message: str
    created_at: datetime
    details: AlertDetails | None = None
    expires_at: datetime | None = None
    acknowledged: bool = False
    acknowledged_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at < (now or utcnow())

    def is_active(self, now: datetime | None = None) -> bool:
        return not self.acknowledged and not self.is_expired(now)


@dataclass
class AlertCondition:
    """Standing rule: metric, operator and threshold."""

    id: str
    symbol: str
    type: AlertType
    metric: str
    operator: ComparisonOperator
    value: float
    enabled: bool = True
    created_at: datetime = field(default_factory=utcnow)
    last_triggered: datetime | None = None
    repeat_interval: timedelta | None = None

    def __post_init__(self) -> None:
        self.symbol = self.symbol.upper().strip()
        if not isinstance(self.operator, ComparisonOperator):
            self.operator = ComparisonOperator(self.operator)

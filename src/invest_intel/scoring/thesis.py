"""Investment thesis generation from signals, fundamentals and catalysts."""

from collections.abc import Sequence
from dataclasses import dataclass

from invest_intel.fundamentals import (
    GrowthFactorAnalyzer,
    QualityAnalysis,
    QualityFactorAnalyzer,
    ValuationAnalysis,
    ValuationFactorAnalyzer,
)
from invest_intel.models import (
    Asset,
    AssetClass,
    Direction,
    FundamentalSnapshot,
    InvestmentThesis,
    Signal,
    SignalStrength,
)
from invest_intel.utils.sanitize import first_sentence

STRENGTH_WEIGHTS: dict[SignalStrength, float] = {
    SignalStrength.STRONG: 2.0,
    SignalStrength.MODERATE: 1.0,
}
FUNDAMENTAL_NUDGE = 0.5
DIRECTION_THRESHOLD = 0.5
MAX_RISKS = 5
STANDARD_RISK = "Standard market risk"


@dataclass(frozen=True)
class ThesisComponents:
    """Narrative per analysis area plus the structured reads behind them."""

    technical: str
    fundamental: str
    valuation: str
    catalyst: str
    risk: str
    technical_bias: str  # "bullish" | "bearish" | "mixed" | "none"
    grade: str | None = None
    assessment: str | None = None


def conviction_label(confidence: float) -> str:
    if confidence > 0.7:
        return "high"
    if confidence > 0.4:
        return "moderate"
    return "low"


def signal_agreement(signals: Sequence[Signal]) -> float:
    """Share of directional signals on the majority side; 0.5 when none are directional."""
    if not signals:
        return 0.0
    longs = sum(1 for s in signals if s.direction is Direction.LONG)
    shorts = sum(1 for s in signals if s.direction is Direction.SHORT)
    if longs + shorts == 0:
        return 0.5
    return max(longs, shorts) / (longs + shorts)


class ThesisGenerator:
    """Builds an InvestmentThesis. Analyzers are injected; defaults are constructed when omitted."""

    def __init__(
        self,
        quality: QualityFactorAnalyzer | None = None,
        valuation: ValuationFactorAnalyzer | None = None,
        growth: GrowthFactorAnalyzer | None = None,
    ):
        self.quality = quality or QualityFactorAnalyzer()
        self.valuation = valuation or ValuationFactorAnalyzer()
        self.growth = growth or GrowthFactorAnalyzer()

    def generate(
        self,
        asset: Asset,
        signals: Sequence[Signal],
        fundamentals: FundamentalSnapshot | None = None,
        catalysts: Sequence[str] | None = None,
    ) -> InvestmentThesis:
        catalysts = list(catalysts or [])
        quality = self.quality.analyze(fundamentals) if fundamentals else None
        valuation = self.valuation.analyze(fundamentals, asset.sector) if fundamentals else None

        components = self._components(signals, fundamentals, catalysts, quality, valuation)
        direction = self._direction(signals, quality, valuation)
        confidence = self._confidence(signals, quality)

        return InvestmentThesis(
            summary=self._summary(asset, direction, components, confidence),
            bull_case=self._bull_case(components, direction),
            bear_case=self._bear_case(components, direction),
            catalysts=catalysts,
            risks=self._risks(asset, signals, quality),
            confidence=confidence,
        )

    def components(
        self,
        asset: Asset,
        signals: Sequence[Signal],
        fundamentals: FundamentalSnapshot | None = None,
        catalysts: Sequence[str] | None = None,
    ) -> ThesisComponents:
        quality = self.quality.analyze(fundamentals) if fundamentals else None
        valuation = self.valuation.analyze(fundamentals, asset.sector) if fundamentals else None
        return self._components(signals, fundamentals, list(catalysts or []), quality, valuation)

    def direction(
        self,
        asset: Asset,
        signals: Sequence[Signal],
        fundamentals: FundamentalSnapshot | None = None,
    ) -> Direction:
        """
        Overall lean.

        Each signal adds or subtracts confidence times a strength weight
        (strong 2, moderate 1, otherwise 0.5). Quality above 70 or below 40
        and an under/overvalued assessment each nudge by 0.5. A net score
        beyond +/-0.5 picks a side.
        """
        quality = self.quality.analyze(fundamentals) if fundamentals else None
        valuation = self.valuation.analyze(fundamentals, asset.sector) if fundamentals else None
        return self._direction(signals, quality, valuation)

    def one_liner(self, thesis: InvestmentThesis) -> str:
        side = "Long" if len(thesis.bull_case) >= len(thesis.bear_case) else "Short"
        conviction = conviction_label(thesis.confidence)
        if conviction == "moderate":
            conviction = "medium"
        return f"{side} with {conviction} conviction: {thesis.summary}"

    def _components(
        self,
        signals: Sequence[Signal],
        fundamentals: FundamentalSnapshot | None,
        catalysts: list[str],
        quality: QualityAnalysis | None,
        valuation: ValuationAnalysis | None,
    ) -> ThesisComponents:
        technical, bias = self._technical(signals)

        if fundamentals is not None and quality is not None:
            growth = self.growth.analyze(fundamentals)
            parts = [
                f"Quality grade: {quality.grade} (score: {quality.score.overall:.0f})",
                f"Growth profile: {growth.profile}",
            ]
            if quality.strengths:
                parts.append(f"Strengths: {', '.join(quality.strengths[:2])}")
            if quality.weaknesses:
                parts.append(f"Concerns: {', '.join(quality.weaknesses[:2])}")
            fundamental = ". ".join(parts)
        else:
            fundamental = "No fundamental data available"

        if valuation is not None:
            parts = [f"Valuation: {valuation.assessment}"]
            if valuation.key_metrics:
                parts.append(valuation.key_metrics[0])
            if valuation.concerns:
                parts.append(f"Caution: {valuation.concerns[0]}")
            valuation_text = ". ".join(parts)
        else:
            valuation_text = "Valuation not assessed"

        if catalysts:
            catalyst = f"{len(catalysts)} potential catalyst(s): {', '.join(catalysts[:3])}"
            if len(catalysts) > 3:
                catalyst += f" and {len(catalysts) - 3} more"
        else:
            catalyst = "No specific catalysts identified"

        return ThesisComponents(
            technical=technical,
            fundamental=fundamental,
            valuation=valuation_text,
            catalyst=catalyst,
            risk=self._risk_text(signals, fundamentals),
            technical_bias=bias,
            grade=quality.grade if quality else None,
            assessment=valuation.assessment if valuation else None,
        )

    def _technical(self, signals: Sequence[Signal]) -> tuple[str, str]:
        if not signals:
            return "No technical signals available", "none"

        longs = sum(1 for s in signals if s.direction is Direction.LONG)
        shorts = sum(1 for s in signals if s.direction is Direction.SHORT)
        strong = sum(1 for s in signals if s.strength is SignalStrength.STRONG)
        bias = "bullish" if longs > shorts else "bearish" if shorts > longs else "mixed"

        types = list(dict.fromkeys(s.type.value for s in signals))
        avg_confidence = sum(s.confidence for s in signals) / len(signals)
        text = (
            f"Technical picture is {bias} with {len(signals)} signals ({strong} strong). "
            f"Signal types: {', '.join(types)}. Average confidence: {avg_confidence * 100:.0f}%."
        )
        return text, bias

    def _risk_text(self, signals: Sequence[Signal], fundamentals: FundamentalSnapshot | None) -> str:
        risks: list[str] = []
        low_confidence = sum(1 for s in signals if s.confidence < 0.4)
        if low_confidence > len(signals) / 2:
            risks.append("Low signal confidence")

        directions = {s.direction for s in signals}
        if Direction.LONG in directions and Direction.SHORT in directions:
            risks.append("Mixed technical signals")

        if fundamentals is not None:
            if fundamentals.debt_to_equity is not None and fundamentals.debt_to_equity > 2:
                risks.append("High leverage")
            if fundamentals.current_ratio is not None and fundamentals.current_ratio < 1:
                risks.append("Liquidity concerns")

        return ", ".join(risks) if risks else STANDARD_RISK

    def _direction(
        self,
        signals: Sequence[Signal],
        quality: QualityAnalysis | None,
        valuation: ValuationAnalysis | None,
    ) -> Direction:
        score = 0.0
        for signal in signals:
            weight = STRENGTH_WEIGHTS.get(signal.strength, 0.5)
            if signal.direction is Direction.LONG:
                score += weight * signal.confidence
            elif signal.direction is Direction.SHORT:
                score -= weight * signal.confidence

        if quality is not None:
            if quality.score.overall > 70:
                score += FUNDAMENTAL_NUDGE
            elif quality.score.overall < 40:
                score -= FUNDAMENTAL_NUDGE

        if valuation is not None:
            if valuation.assessment in ("undervalued", "deeply-undervalued"):
                score += FUNDAMENTAL_NUDGE
            elif valuation.assessment in ("overvalued", "deeply-overvalued"):
                score -= FUNDAMENTAL_NUDGE

        if score > DIRECTION_THRESHOLD:
            return Direction.LONG
        if score < -DIRECTION_THRESHOLD:
            return Direction.SHORT
        return Direction.NEUTRAL

    def _confidence(self, signals: Sequence[Signal], quality: QualityAnalysis | None) -> float:
        """Mean of the signal read (60% confidence, 40% agreement) and quality/100."""
        total = 0.0
        sources = 0
        if signals:
            avg_confidence = sum(s.confidence for s in signals) / len(signals)
            total += avg_confidence * 0.6 + signal_agreement(signals) * 0.4
            sources += 1
        if quality is not None:
            total += quality.score.overall / 100
            sources += 1
        return total / sources if sources else 0.5

    def _bull_case(self, components: ThesisComponents, direction: Direction) -> list[str]:
        bull: list[str] = []
        if direction is not Direction.SHORT:
            if components.technical_bias == "bullish":
                bull.append("Technical indicators suggest upside momentum")
            if components.grade in ("A", "B"):
                bull.append("Strong fundamental quality supports valuation")
            if components.assessment in ("undervalued", "deeply-undervalued"):
                bull.append("Trading at attractive valuation relative to peers/history")
            if components.catalyst != "No specific catalysts identified":
                bull.append("Identified catalysts could drive re-rating")
        return bull or ["Limited bullish factors identified"]

    def _bear_case(self, components: ThesisComponents, direction: Direction) -> list[str]:
        bear: list[str] = []
        if direction is not Direction.LONG:
            if components.technical_bias == "bearish":
                bear.append("Technical breakdown signals further downside")
            if components.grade in ("D", "F"):
                bear.append("Weak fundamentals raise concerns")
            if components.assessment in ("overvalued", "deeply-overvalued"):
                bear.append("Valuation appears stretched")
        if components.risk != STANDARD_RISK:
            bear.append(f"Key risks: {components.risk}")
        return bear or ["Limited bearish factors identified"]

    def _risks(
        self,
        asset: Asset,
        signals: Sequence[Signal],
        quality: QualityAnalysis | None,
    ) -> list[str]:
        risks = ["Market-wide selloff or volatility spike"]
        if asset.asset_class is AssetClass.CRYPTO:
            risks.append("High volatility and regulatory uncertainty")
        if len(signals) < 3:
            risks.append("Limited technical confirmation")
        if quality is not None:
            risks.extend(quality.red_flags[:2])
        if asset.sector:
            risks.append(f"Sector-specific headwinds in {asset.sector}")
        return risks[:MAX_RISKS]

    def _summary(
        self,
        asset: Asset,
        direction: Direction,
        components: ThesisComponents,
        confidence: float,
    ) -> str:
        lean = {Direction.LONG: "bullish", Direction.SHORT: "bearish"}.get(direction, "neutral")
        return (
            f"{asset.symbol} presents a {lean} opportunity with {conviction_label(confidence)} conviction. "
            f"{first_sentence(components.technical)}. "
            f"{first_sentence(components.valuation)}."
        )

from dataclasses import dataclass
from typing import Optional, Protocol

from neurotrade.constants import Action
from neurotrade.utils.candle import Candle, to_float


class DecisionError(ValueError):
    """Decision service answered with something we can't trade on."""


@dataclass(frozen=True)
class TradeDecision:
    symbol: str
    action: Action
    duration: int                          # number of candles to hold (1–3)
    stake: float
    confidence: int                        # 0–100
    reasoning: str
    technical_analysis: Optional[str] = None

    @classmethod
    def from_mapping(cls, symbol: str, data: dict) -> "TradeDecision":
        """Validate a raw service payload.

        Action must be CALL/PUT/HOLD; duration and confidence are clamped to
        their ranges rather than rejected.
        """
        if not isinstance(data, dict):
            raise DecisionError(f"decision payload is not an object: {data!r}")
        raw_action = str(data.get("action", "")).strip().upper()
        try:
            action = Action(raw_action)
        except ValueError:
            raise DecisionError(f"unknown action {data.get('action')!r}") from None

        duration = int(round(to_float(data.get("duration"), 1.0)))
        confidence = int(round(to_float(data.get("confidence"))))
        analysis = data.get("technical_analysis")
        return cls(
            symbol=symbol,
            action=action,
            duration=min(3, max(1, duration)),
            stake=to_float(data.get("stake")),
            confidence=min(100, max(0, confidence)),
            reasoning=str(data.get("reasoning") or ""),
            technical_analysis=str(analysis) if analysis else None,
        )


@dataclass(frozen=True)
class DecisionRequest:
    symbol: str
    candles: tuple[Candle, ...]            # ascending, most recent last
    balance: float
    timeframe_minutes: float


class DecisionEngine(Protocol):
    """Opaque, stateless and fallible. Retries are the caller's business."""

    async def analyze(self, request: DecisionRequest) -> TradeDecision:
        ...

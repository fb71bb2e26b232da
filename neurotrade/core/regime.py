import numpy as np
from neurotrade.constants import Regime
from neurotrade.utils.candle import Candle

class RegimeDetector:
    @staticmethod
    def detect(candles: list[Candle], window: int = 20, min_candles: int = 5) -> Regime:
        """Classify the last ``window`` closes (fewer if that's all we have)."""
        closes = np.array([c.close for c in candles[-window:]], dtype=np.float64)
        if len(closes) < min_candles:
            return Regime.RANGING

        rets = np.diff(closes) / (closes[:-1] + 1e-10)
        trend = np.polyfit(np.arange(len(closes)), closes, 1)[0]
        vol = np.std(rets)

        # Normalise trend by price level
        rel_trend = trend / (closes[-1] + 1e-10) * len(closes)

        if vol > 0.005:
            return Regime.VOLATILE
        if rel_trend > 0.002:
            return Regime.TRENDING_UP
        if rel_trend < -0.002:
            return Regime.TRENDING_DOWN
        return Regime.RANGING

    @staticmethod
    def swing_levels(candles: list[Candle], lookback: int = 10) -> tuple[float, float]:
        """Support/resistance from recent wicks, excluding the latest candle."""
        prior = candles[-lookback - 1:-1] or candles
        lows = np.array([c.low for c in prior])
        highs = np.array([c.high for c in prior])
        return float(lows.min()), float(highs.max())

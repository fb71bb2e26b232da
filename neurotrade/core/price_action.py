"""
Local decision engine: pure candle geometry, no indicators.

Reads the latest closed candle against the ones before it (engulfing bars,
pin bars, dojis, reaction at recent swing levels) and the numpy trend
regime, then sizes the stake with the money manager's growth plan. Used when
no hosted decision service is wired in, and as a reference implementation of
the ``DecisionEngine`` contract.
"""

import numpy as np

from neurotrade.constants import Action, Regime
from neurotrade.core.decision import DecisionRequest, TradeDecision
from neurotrade.core.regime import RegimeDetector
from neurotrade.trading.money_manager import MoneyManager
from neurotrade.utils.candle import Candle


def _geometry(c: Candle) -> tuple[float, float, float, float]:
    body = abs(c.close - c.open)
    rng = max(c.high - c.low, 1e-10)
    upper = c.high - max(c.open, c.close)
    lower = min(c.open, c.close) - c.low
    return body, rng, upper, lower


class PriceActionEngine:
    def __init__(self, money_mgr: MoneyManager, min_score: int = 2):
        self.money_mgr = money_mgr
        self.detector = RegimeDetector()
        self.min_score = min_score

    async def analyze(self, request: DecisionRequest) -> TradeDecision:
        return self.decide(request)

    def decide(self, request: DecisionRequest) -> TradeDecision:
        candles = list(request.candles)
        if len(candles) < 5:
            return self._hold(request, "Not enough candles", "Need at least 5 closed candles.")

        last, prev = candles[-1], candles[-2]
        body, rng, upper, lower = _geometry(last)
        prev_body = abs(prev.close - prev.open)
        avg_range = float(np.mean([c.high - c.low for c in candles])) or 1e-10
        regime = self.detector.detect(candles)
        support, resistance = self.detector.swing_levels(candles)

        score = 0
        setups: list[str] = []
        notes: list[str] = []

        # ── indecision ──
        if body <= 0.1 * rng:
            return self._hold(
                request, "Doji — indecision",
                f"Latest candle closed as a doji (body {body:.5f} of range {rng:.5f}); "
                f"no side in control. Regime {regime.value}.",
            )

        # ── engulfing ──
        if prev.close < prev.open and last.close > last.open and body > prev_body \
                and last.close >= prev.open and last.open <= prev.close:
            score += 2
            setups.append("Bullish Engulfing")
            notes.append("buyers swallowed the prior red body")
        elif prev.close > prev.open and last.close < last.open and body > prev_body \
                and last.close <= prev.open and last.open >= prev.close:
            score -= 2
            setups.append("Bearish Engulfing")
            notes.append("sellers swallowed the prior green body")

        # ── pin bars (wick rejection) ──
        if lower >= 2 * body and upper <= body:
            score += 1
            setups.append("Bullish Pinbar")
            notes.append("long lower wick — sellers rejected")
        elif upper >= 2 * body and lower <= body:
            score -= 1
            setups.append("Bearish Pinbar")
            notes.append("long upper wick — buyers rejected")

        # ── momentum ──
        if body >= 0.7 * rng and rng >= avg_range:
            score += 1 if last.close > last.open else -1
            notes.append("large body, strong momentum")

        # ── key levels ──
        if last.low <= support + 0.25 * avg_range and last.close > last.open:
            score += 1
            setups.append("Support Rejection")
            notes.append(f"held support near {support}")
        elif last.high >= resistance - 0.25 * avg_range and last.close < last.open:
            score -= 1
            setups.append("Resistance Rejection")
            notes.append(f"rejected resistance near {resistance}")

        # ── structure ──
        if regime == Regime.TRENDING_UP:
            score += 1
        elif regime == Regime.TRENDING_DOWN:
            score -= 1

        threshold = self.min_score + (1 if regime == Regime.VOLATILE else 0)
        analysis = (
            f"Regime {regime.value}; latest candle O:{last.open} H:{last.high} L:{last.low} C:{last.close}; "
            + ("; ".join(notes) if notes else "no clear pattern")
            + f". Score {score:+d}."
        )
        if abs(score) < threshold:
            return self._hold(request, " + ".join(setups) or "No setup", analysis)

        action = Action.CALL if score > 0 else Action.PUT
        confidence = int(min(95, 50 + 10 * abs(score)))
        trending = regime in (Regime.TRENDING_UP, Regime.TRENDING_DOWN)
        duration = (3 if confidence >= 80 else 2) if trending else 1

        return TradeDecision(
            symbol=request.symbol,
            action=action,
            duration=duration,
            stake=self.money_mgr.plan_stake(request.balance, confidence),
            confidence=confidence,
            reasoning=" + ".join(setups) or ("Trend Continuation" if trending else "Momentum"),
            technical_analysis=analysis,
        )

    @staticmethod
    def _hold(request: DecisionRequest, reasoning: str, analysis: str) -> TradeDecision:
        return TradeDecision(
            symbol=request.symbol,
            action=Action.HOLD,
            duration=1,
            stake=0.0,
            confidence=0,
            reasoning=reasoning,
            technical_analysis=analysis,
        )

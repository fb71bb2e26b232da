"""
Single-flight, coalescing queue in front of the decision service.

One pending request per symbol (a newer window overwrites the queued one) and
one worker task draining them, so at most one decision call is ever
outstanding no matter how many symbols close a candle at once.
"""

import asyncio
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from neurotrade.config import BotConfig
from neurotrade.constants import Action
from neurotrade.core.aggregator import CandleAggregator
from neurotrade.core.decision import DecisionEngine, DecisionRequest
from neurotrade.trading.account import Account
from neurotrade.trading.executor import TradeExecutor
from neurotrade.utils.candle import Candle
from neurotrade.utils.logger import LogFeed


@dataclass
class AnalysisRequest:
    symbol: str
    candles: tuple[Candle, ...]
    generation: int


class AnalysisQueue:
    def __init__(self, cfg: BotConfig, engine: DecisionEngine, aggregator: CandleAggregator,
                 executor: TradeExecutor, account: Account, feed: LogFeed):
        self.cfg = cfg
        self.engine = engine
        self.aggregator = aggregator
        self.executor = executor
        self.account = account
        self.feed = feed
        self.pending: "OrderedDict[str, AnalysisRequest]" = OrderedDict()
        self._worker: Optional[asyncio.Task] = None

    @property
    def busy(self) -> bool:
        return self._worker is not None and not self._worker.done()

    # ------------------------------------------------------------------
    def enqueue(self, symbol: str, candles: Sequence[Candle], generation: int) -> bool:
        """Queue a window for analysis. Returns False when it was too short."""
        if not candles or len(candles) < self.cfg.min_analysis_candles:
            return False

        window = tuple(candles)
        existing = self.pending.get(symbol)
        if existing is not None:
            existing.candles = window
            existing.generation = generation
        else:
            self.pending[symbol] = AnalysisRequest(symbol, window, generation)

        if not self.busy:
            self._worker = asyncio.get_running_loop().create_task(self._run())
        return True

    async def stop(self) -> None:
        self.pending.clear()
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

    # ------------------------------------------------------------------
    async def _run(self) -> None:
        while self.pending:
            _, request = self.pending.popitem(last=False)
            await self._process(request)
            await asyncio.sleep(self.cfg.queue_cooldown)

    async def _process(self, request: AnalysisRequest) -> None:
        symbol, generation = request.symbol, request.generation
        self.aggregator.set_analyzing(symbol, generation, True)
        try:
            last = request.candles[-1]
            closed_at = datetime.fromtimestamp(last.epoch).strftime("%H:%M:%S")
            self.feed.ai(f"[{symbol}] 🧠 Analyzing candle closed at {closed_at} (price: {last.close})...")

            decision_request = DecisionRequest(
                symbol=symbol,
                candles=request.candles[-self.cfg.decision_window:],
                balance=self.account.balance,
                timeframe_minutes=self.aggregator.timeframe / 60,
            )
            decision = await asyncio.wait_for(
                self.engine.analyze(decision_request), self.cfg.analysis_timeout,
            )

            if not self.aggregator.record_decision(symbol, generation, decision):
                self.feed.warning(f"[{symbol}] Discarding stale decision — stream changed while analysing")
                return

            self.feed.ai(f"[{symbol}] 📝 Analysis: {decision.reasoning}")
            if decision.action != Action.HOLD:
                self.feed.success(f">>> 🚀 SIGNAL: {decision.action.value} ({decision.confidence}%)")
                if self.executor.enabled:
                    self.executor.execute(decision, self.aggregator.timeframe, self.account.currency)

        except asyncio.TimeoutError:
            self.feed.error(f"AI Failed [{symbol}]: timed out after {self.cfg.analysis_timeout:.0f}s")
        except Exception as e:
            self.feed.error(f"AI Failed [{symbol}]: {e}")
        finally:
            self.aggregator.set_analyzing(symbol, generation, False)

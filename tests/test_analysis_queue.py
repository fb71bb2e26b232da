import asyncio

from conftest import ScriptedEngine, make_candles, settle

from neurotrade.constants import Action
from neurotrade.core.aggregator import CandleAggregator
from neurotrade.core.analysis_queue import AnalysisQueue
from neurotrade.trading.account import Account
from neurotrade.trading.executor import TradeExecutor
from neurotrade.utils.logger import LogFeed
from neurotrade.constants import LogType


class Harness:
    def __init__(self, cfg, engine, symbols=("R_100",), trading=True):
        self.sent = []
        self.feed = LogFeed()
        self.aggregator = CandleAggregator(cfg.timeframe)
        self.generations = {s: self.aggregator.open_stream(s).generation for s in symbols}
        self.account = Account(balance=50.0, currency="USD")
        self.executor = TradeExecutor(cfg, self._send, self.feed)
        self.executor.enabled = trading
        self.queue = AnalysisQueue(cfg, engine, self.aggregator, self.executor, self.account, self.feed)

    def _send(self, frame):
        self.sent.append(frame)
        return True

    def enqueue(self, symbol, n=10, **kw):
        candles = make_candles(n, **kw)
        return self.queue.enqueue(symbol, candles, self.generations[symbol])

    async def drain(self):
        while self.queue.busy:
            await asyncio.sleep(0.001)


def test_short_windows_are_rejected(cfg) -> None:
    async def run():
        engine = ScriptedEngine()
        h = Harness(cfg, engine)
        assert h.enqueue("R_100", n=4) is False
        assert h.queue.pending == {}
        assert not h.queue.busy

    asyncio.run(run())


def test_decision_is_recorded_and_order_sent(cfg) -> None:
    async def run():
        engine = ScriptedEngine(action=Action.PUT, stake=2.5, duration=2)
        h = Harness(cfg, engine)
        h.enqueue("R_100", n=30)
        await h.drain()

        assert len(engine.calls) == 1
        request = engine.calls[0]
        assert len(request.candles) == cfg.decision_window
        assert request.candles[-1].epoch == make_candles(30)[-1].epoch
        assert request.balance == 50.0
        assert request.timeframe_minutes == 1.0

        stream = h.aggregator.streams["R_100"]
        assert stream.last_decision.action == Action.PUT
        assert stream.is_analyzing is False
        assert len(h.sent) == 1
        assert h.sent[0]["parameters"]["contract_type"] == "PUT"
        assert h.sent[0]["parameters"]["duration"] == 2
        assert h.sent[0]["parameters"]["amount"] == 2.5

    asyncio.run(run())


def test_stream_is_flagged_while_analysing(cfg) -> None:
    async def run():
        engine = ScriptedEngine(delay=0.05)
        h = Harness(cfg, engine)
        h.enqueue("R_100")
        await asyncio.sleep(0.01)
        assert h.aggregator.streams["R_100"].is_analyzing is True
        await h.drain()
        assert h.aggregator.streams["R_100"].is_analyzing is False

    asyncio.run(run())


def test_pending_requests_coalesce_per_symbol(cfg) -> None:
    async def run():
        engine = ScriptedEngine(delay=0.02)
        h = Harness(cfg, engine, symbols=("R_100", "R_50"))
        h.enqueue("R_100")                       # starts immediately
        await settle()
        h.enqueue("R_50", n=6)
        h.enqueue("R_50", n=8)
        assert list(h.queue.pending) == ["R_50"]
        await h.drain()

        assert [c.symbol for c in engine.calls] == ["R_100", "R_50"]
        assert len(engine.calls[1].candles) == 8

    asyncio.run(run())


def test_two_enqueues_before_processing_yield_one_call(cfg) -> None:
    async def run():
        engine = ScriptedEngine()
        h = Harness(cfg, engine)
        h.enqueue("R_100", n=6)
        h.enqueue("R_100", n=9)
        await h.drain()

        assert len(engine.calls) == 1
        assert len(engine.calls[0].candles) == 9

    asyncio.run(run())


def test_only_one_call_in_flight(cfg) -> None:
    async def run():
        engine = ScriptedEngine(delay=0.01, action=Action.HOLD)
        symbols = ("R_100", "R_75", "R_50", "R_25", "R_10")
        h = Harness(cfg, engine, symbols=symbols)
        for s in symbols:
            h.enqueue(s)
        await h.drain()

        assert engine.max_active == 1
        assert [c.symbol for c in engine.calls] == list(symbols)

    asyncio.run(run())


def test_cooldown_paces_calls(cfg) -> None:
    cfg.queue_cooldown = 0.05

    async def run():
        engine = ScriptedEngine(action=Action.HOLD)
        h = Harness(cfg, engine, symbols=("R_100", "R_50"))
        loop = asyncio.get_running_loop()
        start = loop.time()
        h.enqueue("R_100")
        h.enqueue("R_50")
        await h.drain()
        assert loop.time() - start >= 0.09

    asyncio.run(run())


def test_engine_failure_is_logged_and_queue_continues(cfg) -> None:
    async def run():
        engine = ScriptedEngine(error=RuntimeError("boom"))
        h = Harness(cfg, engine, symbols=("R_100", "R_50"))
        h.enqueue("R_100")
        h.enqueue("R_50")
        await h.drain()

        assert len(engine.calls) == 2
        errors = [e.message for e in h.feed.entries() if e.kind == LogType.ERROR]
        assert any("AI Failed [R_100]: boom" in m for m in errors)
        assert h.sent == []
        assert h.aggregator.streams["R_100"].is_analyzing is False

    asyncio.run(run())


def test_timeout_is_treated_as_failure(cfg) -> None:
    cfg.analysis_timeout = 0.02

    async def run():
        engine = ScriptedEngine(delay=1.0)
        h = Harness(cfg, engine)
        h.enqueue("R_100")
        await h.drain()

        errors = [e.message for e in h.feed.entries() if e.kind == LogType.ERROR]
        assert any("timed out" in m for m in errors)
        assert h.aggregator.streams["R_100"].last_decision is None
        assert h.sent == []

    asyncio.run(run())


def test_hold_and_disabled_trading_never_order(cfg) -> None:
    async def run():
        hold = Harness(cfg, ScriptedEngine(action=Action.HOLD))
        hold.enqueue("R_100")
        await hold.drain()
        assert hold.sent == []
        assert hold.aggregator.streams["R_100"].last_decision.action == Action.HOLD

        paused = Harness(cfg, ScriptedEngine(action=Action.CALL), trading=False)
        paused.enqueue("R_100")
        await paused.drain()
        assert paused.sent == []
        assert paused.aggregator.streams["R_100"].last_decision.action == Action.CALL

    asyncio.run(run())


def test_decision_for_replaced_stream_is_discarded(cfg) -> None:
    async def run():
        engine = ScriptedEngine(delay=0.02)
        h = Harness(cfg, engine)
        h.enqueue("R_100")
        await asyncio.sleep(0.005)
        h.aggregator.set_timeframe(180)
        h.aggregator.open_stream("R_100")
        await h.drain()

        assert h.sent == []
        assert h.aggregator.streams["R_100"].last_decision is None
        warnings = [e.message for e in h.feed.entries() if e.kind == LogType.WARNING]
        assert any("stale decision" in m for m in warnings)

    asyncio.run(run())


def test_stop_cancels_worker_and_drops_pending(cfg) -> None:
    async def run():
        engine = ScriptedEngine(delay=1.0)
        h = Harness(cfg, engine, symbols=("R_100", "R_50"))
        h.enqueue("R_100")
        h.enqueue("R_50")
        await settle()
        await h.queue.stop()

        assert not h.queue.busy
        assert h.queue.pending == {}
        assert len(engine.calls) == 1

    asyncio.run(run())

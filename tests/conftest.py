import asyncio
import json
from typing import Optional

import pytest

from neurotrade.config import BotConfig
from neurotrade.constants import Action
from neurotrade.core.decision import DecisionRequest, TradeDecision
from neurotrade.utils.candle import Candle

T0 = 1_700_000_040  # a minute boundary


def make_candles(n: int, start: int = T0, step: int = 60, price: float = 100.0) -> list[Candle]:
    out = []
    for i in range(n):
        o = price + i * 0.1
        out.append(Candle(epoch=start + i * step, open=o, high=o + 0.5, low=o - 0.5, close=o + 0.05))
    return out


def raw_candles(n: int, start: int = T0, step: int = 60) -> list[dict]:
    return [
        {"epoch": c.epoch, "open": str(c.open), "high": str(c.high), "low": str(c.low), "close": str(c.close)}
        for c in make_candles(n, start, step)
    ]


async def settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeSocket:
    """Stands in for a websockets connection: frames pushed by the test are
    yielded to the reader, frames sent by the client are decoded into ``sent``."""

    def __init__(self):
        self.sent: list[dict] = []
        self.inbox: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def send(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.inbox.put_nowait(None)

    def push(self, frame: dict) -> None:
        self.inbox.put_nowait(json.dumps(frame))

    def drop(self) -> None:
        self.inbox.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.inbox.get()
        if item is None:
            raise StopAsyncIteration
        return item

    def sent_with(self, key: str) -> list[dict]:
        return [f for f in self.sent if key in f]


def connector_for(socket: FakeSocket):
    async def connect(url: str):
        connect.urls.append(url)
        return socket
    connect.urls = []
    return connect


class ScriptedEngine:
    """Decision engine double that records calls and concurrency."""

    def __init__(self, action: Action = Action.CALL, delay: float = 0.0,
                 error: Optional[BaseException] = None, stake: float = 1.0, duration: int = 1):
        self.action = action
        self.delay = delay
        self.error = error
        self.stake = stake
        self.duration = duration
        self.calls: list[DecisionRequest] = []
        self.active = 0
        self.max_active = 0

    async def analyze(self, request: DecisionRequest) -> TradeDecision:
        self.calls.append(request)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return TradeDecision(
                symbol=request.symbol,
                action=self.action,
                duration=self.duration,
                stake=self.stake,
                confidence=70,
                reasoning="Scripted",
            )
        finally:
            self.active -= 1


@pytest.fixture
def cfg() -> BotConfig:
    return BotConfig(
        token="tok",
        symbols=["R_100"],
        queue_cooldown=0.0,
        analysis_timeout=1.0,
        keepalive_interval=0.01,
        resubscribe_delay=0.01,
    )

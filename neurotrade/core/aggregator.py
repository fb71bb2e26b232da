"""
Per-symbol candle buffers rebuilt from a backfill snapshot plus live ``ohlc``
updates.

The buffer is the single source of truth for every symbol: it is only
written here (and the analysing/decision fields by the analysis queue through
the guarded setters), and anything shown to a user comes from ``snapshot()``.
"""

import copy
import itertools
from dataclasses import dataclass, field
from typing import Callable, Optional

from neurotrade.constants import StreamStatus, display_name
from neurotrade.core.decision import TradeDecision
from neurotrade.utils.candle import Candle, parse_candle
from neurotrade.utils.logger import log

_generations = itertools.count(1)


@dataclass
class SymbolStream:
    symbol: str
    display_name: str
    candles: list[Candle] = field(default_factory=list)
    last_price: float = 0.0
    is_analyzing: bool = False
    status: StreamStatus = StreamStatus.WAITING
    last_decision: Optional[TradeDecision] = None
    generation: int = 0


@dataclass(frozen=True)
class CandleClosed:
    symbol: str
    candle: Candle                  # the interval that just completed
    window: tuple[Candle, ...]      # closed candles, oldest first, ending with ``candle``
    generation: int


class CandleAggregator:
    def __init__(self, timeframe: int = 60, max_candles: int = 60,
                 on_close: Optional[Callable[[CandleClosed], None]] = None):
        self.timeframe = timeframe
        self.max_candles = max_candles
        self.on_close = on_close
        self.streams: dict[str, SymbolStream] = {}

    # ------------------------------------------------------------------
    def open_stream(self, symbol: str) -> SymbolStream:
        stream = SymbolStream(
            symbol=symbol,
            display_name=display_name(symbol),
            generation=next(_generations),
        )
        self.streams[symbol] = stream
        return stream

    def close_stream(self, symbol: str) -> None:
        self.streams.pop(symbol, None)

    def reset(self) -> None:
        self.streams.clear()

    def set_timeframe(self, seconds: int) -> None:
        """Switch granularity. Every buffer is dropped; callers resubscribe."""
        self.timeframe = seconds
        self.reset()

    def is_current(self, symbol: str, generation: int) -> bool:
        stream = self.streams.get(symbol)
        return stream is not None and stream.generation == generation

    # ------------------------------------------------------------------
    def apply_history(self, symbol: str, raw_candles, granularity: Optional[int] = None) -> Optional[SymbolStream]:
        """Merge a backfill snapshot into the symbol's buffer.

        Live candles that raced ahead of the snapshot (epoch newer than the
        snapshot's last candle) are kept after it.
        """
        stream = self.streams.get(symbol)
        if stream is None:
            log.debug("History for %s ignored — not subscribed", symbol)
            return None
        if granularity is not None and granularity != self.timeframe:
            log.debug("History for %s ignored — granularity %s != %s",
                      symbol, granularity, self.timeframe)
            return None

        try:
            parsed = [parse_candle(c) for c in raw_candles]
        except (TypeError, ValueError, AttributeError, IndexError) as e:
            log.warning("Malformed history for %s: %s", symbol, e)
            stream.status = StreamStatus.ERROR
            return stream

        # Sorted, one candle per epoch (the later one wins).
        by_epoch = {c.epoch: c for c in parsed}
        history = [by_epoch[e] for e in sorted(by_epoch)]

        last_history_epoch = history[-1].epoch if history else 0
        newer_live = [c for c in stream.candles if c.epoch > last_history_epoch]
        merged = history + newer_live

        stream.candles = merged[-self.max_candles:]
        stream.last_price = stream.candles[-1].close if stream.candles else 0.0
        stream.status = StreamStatus.ACTIVE
        return stream

    # ------------------------------------------------------------------
    def apply_update(self, symbol: str, candle: Candle, granularity: int) -> Optional[CandleClosed]:
        """Fold one live candle into the buffer.

        Returns the close event when ``candle`` starts a new interval and the
        buffer already held one; the very first tick after a subscribe never
        closes anything.
        """
        if granularity != self.timeframe:
            return None
        stream = self.streams.get(symbol)
        if stream is None:
            return None

        candles = stream.candles
        last = candles[-1] if candles else None
        closed: Optional[Candle] = None

        if last is not None and candle.epoch == last.epoch:
            candles[-1] = candle
        elif last is None or candle.epoch > last.epoch:
            closed = last
            candles.append(candle)
        else:
            log.debug("Stale %s candle %d behind %d — dropped", symbol, candle.epoch, last.epoch)
            return None

        if len(candles) > self.max_candles:
            del candles[:-self.max_candles]

        stream.last_price = candle.close
        stream.status = StreamStatus.ACTIVE

        if closed is None:
            return None

        event = CandleClosed(
            symbol=symbol,
            candle=closed,
            window=tuple(candles[:-1]),
            generation=stream.generation,
        )
        if self.on_close is not None:
            self.on_close(event)
        return event

    # ------------------------------------------------------------------
    def set_analyzing(self, symbol: str, generation: int, flag: bool) -> None:
        if self.is_current(symbol, generation):
            self.streams[symbol].is_analyzing = flag

    def record_decision(self, symbol: str, generation: int, decision: TradeDecision) -> bool:
        if not self.is_current(symbol, generation):
            return False
        self.streams[symbol].last_decision = decision
        return True

    def snapshot(self) -> dict[str, SymbolStream]:
        """Read-only copy for display; mutating it never touches live state."""
        return copy.deepcopy(self.streams)

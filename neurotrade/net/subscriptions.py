import asyncio
from typing import Optional

from neurotrade.config import BotConfig
from neurotrade.core.aggregator import CandleAggregator
from neurotrade.net import protocol
from neurotrade.net.connection import ConnectionManager
from neurotrade.utils.logger import LogFeed, log


class SubscriptionRegistry:
    """Which symbols we want, and which server subscriptions back them.

    Changes made while the session is not live are only recorded; they are
    applied by ``subscribe_all()`` on the next transition to LIVE.
    """

    def __init__(self, cfg: BotConfig, connection: ConnectionManager,
                 aggregator: CandleAggregator, feed: LogFeed):
        self.cfg = cfg
        self.connection = connection
        self.aggregator = aggregator
        self.feed = feed
        self.symbols: list[str] = list(dict.fromkeys(cfg.symbols))
        self.subscription_ids: dict[str, str] = {}
        self._resubscribe: Optional[asyncio.Task] = None

    def __contains__(self, symbol: str) -> bool:
        return symbol in self.symbols

    # ------------------------------------------------------------------
    def add(self, symbol: str) -> bool:
        if symbol in self.symbols:
            return False
        self.symbols.append(symbol)
        if self.connection.is_live:
            self._subscribe(symbol)
        return True

    def remove(self, symbol: str) -> bool:
        if symbol not in self.symbols:
            return False
        self.symbols.remove(symbol)
        self.aggregator.close_stream(symbol)
        sub_id = self.subscription_ids.pop(symbol, None)
        if sub_id and self.connection.is_live:
            self.connection.send(protocol.forget(sub_id))
        return True

    def subscribe_all(self) -> None:
        self.cancel_pending()
        self.subscription_ids.clear()
        for symbol in self.symbols:
            self._subscribe(symbol)

    def _subscribe(self, symbol: str) -> None:
        granularity = self.aggregator.timeframe
        self.aggregator.open_stream(symbol)
        self.feed.info(f"[{symbol}] 📡 Fetching {granularity / 60:g}m candles...")
        self.connection.send(protocol.candles_request(symbol, granularity, self.cfg.history_count))

    def note_subscription(self, symbol: str, sub_id: Optional[str], granularity: Optional[int]) -> None:
        """Remember the server id behind a symbol's candle stream.

        Streams for symbols dropped while their backfill was in flight are
        forgotten straight away.
        """
        if not sub_id:
            return
        if symbol not in self.symbols:
            if self.connection.is_live:
                log.debug("Forgetting orphan subscription %s for %s", sub_id, symbol)
                self.connection.send(protocol.forget(sub_id))
            return
        if granularity is not None and granularity != self.aggregator.timeframe:
            return
        self.subscription_ids[symbol] = sub_id

    # ------------------------------------------------------------------
    def change_timeframe(self, seconds: int) -> bool:
        if seconds == self.aggregator.timeframe:
            return False
        self.feed.warning(f"⏰ Switching timeframe to {seconds / 60:g} minutes...")
        self.aggregator.set_timeframe(seconds)
        self.cancel_pending()
        self.subscription_ids.clear()

        if self.connection.is_live:
            self.connection.send(protocol.forget_all("candles"))
            self._resubscribe = asyncio.get_running_loop().create_task(self._resubscribe_later())
        return True

    async def _resubscribe_later(self) -> None:
        await asyncio.sleep(self.cfg.resubscribe_delay)
        self._resubscribe = None
        if self.connection.is_live:
            for symbol in self.symbols:
                self._subscribe(symbol)

    def cancel_pending(self) -> None:
        task, self._resubscribe = self._resubscribe, None
        if task is not None and not task.done():
            task.cancel()

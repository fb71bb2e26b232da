"""
╔══════════════════════════════════════════════════════════════════════════╗
║  NeuroTrade — multi-symbol candle-close trading assistant (Deriv API)   ║
║                                                                        ║
║   • Live candle reconstruction from backfill + ohlc stream             ║
║   • One decision call per closed candle, single-flight & coalesced     ║
║   • Decision → sized CALL/PUT order, fire-and-forget                   ║
║   • Open positions tracked from settlement pushes                      ║
║                                                                        ║
║  ⚠  USE ON DEMO FIRST.  Binary options carry extreme risk.             ║
╚══════════════════════════════════════════════════════════════════════════╝
"""

from typing import Optional

from neurotrade.config import BotConfig
from neurotrade.constants import MARKET_CLOSED_CODE, TIMEFRAMES
from neurotrade.core.aggregator import CandleAggregator, CandleClosed
from neurotrade.core.analysis_queue import AnalysisQueue
from neurotrade.core.decision import DecisionEngine
from neurotrade.core.price_action import PriceActionEngine
from neurotrade.net import protocol
from neurotrade.net.connection import ConnectionManager, Connector
from neurotrade.net.subscriptions import SubscriptionRegistry
from neurotrade.trading.account import Account
from neurotrade.trading.contracts import ContractTracker
from neurotrade.trading.executor import TradeExecutor
from neurotrade.trading.money_manager import MoneyManager
from neurotrade.trading.performance import PerformanceTracker
from neurotrade.utils.logger import LogFeed, log


class TradingBot:
    def __init__(self, cfg: BotConfig, engine: Optional[DecisionEngine] = None,
                 connector: Optional[Connector] = None):
        self.cfg = cfg
        self.feed = LogFeed(cfg.log_feed_size)
        self.account = Account()
        self.money_mgr = MoneyManager(cfg)
        self.perf = PerformanceTracker()

        self.connection = ConnectionManager(
            cfg, self.feed,
            on_message=self.dispatch,
            on_live=self._on_live,
            on_disconnect=self._on_disconnect,
            connector=connector,
        )
        self.aggregator = CandleAggregator(cfg.timeframe, cfg.max_candles, on_close=self._on_candle_closed)
        self.registry = SubscriptionRegistry(cfg, self.connection, self.aggregator, self.feed)
        self.executor = TradeExecutor(cfg, self.connection.send, self.feed, self.money_mgr)
        self.tracker = ContractTracker(self.feed, self.perf, self.money_mgr)
        self.engine = engine or PriceActionEngine(self.money_mgr)
        self.queue = AnalysisQueue(cfg, self.engine, self.aggregator, self.executor, self.account, self.feed)

        self._handlers = {
            protocol.AuthResult: self._on_auth,
            protocol.ErrorFrame: self._on_error,
            protocol.History: self._on_history,
            protocol.LiveCandle: self._on_ohlc,
            protocol.SettlementPush: self._on_settlement,
            protocol.BalanceUpdate: self._on_balance,
            protocol.OrderAccepted: self._on_order_accepted,
        }

    @property
    def trading_active(self) -> bool:
        return self.executor.enabled

    # ------------------------------------------------------------------
    async def start(self) -> None:
        """Main entry point. Returns when the session ends."""
        log.info("═" * 60)
        log.info("  🎯 NeuroTrade — Deriv")
        log.info("  Symbols: %s  |  Timeframe: %ds", ", ".join(self.registry.symbols), self.aggregator.timeframe)
        log.info("  Auto-trading: %s  |  Min stake: %.2f", "ON" if self.trading_active else "OFF", self.cfg.min_stake)
        log.info("═" * 60)

        if await self.connection.connect(self.cfg.token):
            await self.connection.wait_closed()
        await self.stop()

    async def stop(self) -> None:
        self.registry.cancel_pending()
        await self.queue.stop()
        await self.connection.disconnect()
        log.info("Bot stopped.  Final stats: %s", self.perf.summary(self.account.currency))

    # ------------------------------------------------------------------
    def set_trading(self, enabled: bool) -> None:
        self.executor.enabled = enabled
        self.feed.info(f"Auto-trading {'started' if enabled else 'paused'}")

    def toggle_symbol(self, symbol: str) -> bool:
        """Add or drop a symbol. Returns True when it is now active."""
        if symbol in self.registry:
            self.registry.remove(symbol)
            self.queue.pending.pop(symbol, None)
            return False
        self.registry.add(symbol)
        return True

    def change_timeframe(self, seconds: int) -> bool:
        if seconds not in TIMEFRAMES:
            raise ValueError(f"unsupported timeframe {seconds}s (choose from {sorted(TIMEFRAMES)})")
        if not self.registry.change_timeframe(seconds):
            return False
        self.queue.pending.clear()
        return True

    # ------------------------------------------------------------------
    def dispatch(self, msg: protocol.Message) -> None:
        handler = self._handlers.get(type(msg))
        if handler is not None:
            handler(msg)

    def _on_live(self) -> None:
        self.connection.send(protocol.subscribe_balance())
        self.connection.send(protocol.subscribe_contracts())
        self.registry.subscribe_all()

    def _on_disconnect(self) -> None:
        # Streams end with the session.
        self.registry.cancel_pending()
        self.queue.pending.clear()
        self.aggregator.reset()

    def _on_auth(self, msg: protocol.AuthResult) -> None:
        self.account.apply_auth(msg.balance, msg.currency, msg.login_id)
        self.feed.success(f"Auth Success: {msg.login_id}")

    def _on_balance(self, msg: protocol.BalanceUpdate) -> None:
        self.account.apply_balance(msg.balance, msg.currency)

    def _on_error(self, msg: protocol.ErrorFrame) -> None:
        if msg.code == MARKET_CLOSED_CODE:
            log.debug("Market closed: %s", msg.message)
            return
        if "buy" in msg.echo:
            symbol = (msg.echo.get("parameters") or {}).get("symbol", "?")
            self.feed.error(f"Order rejected [{symbol}]: {msg.message}")
            return
        self.feed.error(f"API: {msg.message}")

    def _on_history(self, msg: protocol.History) -> None:
        self.registry.note_subscription(msg.symbol, msg.subscription_id, msg.granularity)
        stream = self.aggregator.apply_history(msg.symbol, msg.candles, msg.granularity)
        if stream is None:
            return
        # Initial look at the backfill; the last candle is still forming.
        closed = stream.candles[:-1]
        if self.trading_active and len(closed) >= self.cfg.initial_analysis_candles:
            self.queue.enqueue(msg.symbol, closed, stream.generation)

    def _on_ohlc(self, msg: protocol.LiveCandle) -> None:
        self.registry.note_subscription(msg.symbol, msg.subscription_id, msg.granularity)
        self.aggregator.apply_update(msg.symbol, msg.candle, msg.granularity)

    def _on_candle_closed(self, event: CandleClosed) -> None:
        if not self.trading_active:
            return
        self.feed.info(f"[{event.symbol}] 🕯️ Candle Closed. Checking AI...")
        self.queue.enqueue(event.symbol, event.window, event.generation)

    def _on_order_accepted(self, msg: protocol.OrderAccepted) -> None:
        self.tracker.on_order_accepted(msg.contract_id, msg.symbol, msg.contract_type, msg.buy_price)
        self.feed.success(f"Order accepted: #{msg.contract_id} {msg.contract_type} {msg.symbol} @ {msg.buy_price}")

    def _on_settlement(self, msg: protocol.SettlementPush) -> None:
        self.tracker.apply(msg)

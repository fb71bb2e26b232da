from dataclasses import dataclass
from typing import Callable, Optional

from neurotrade.config import BotConfig
from neurotrade.constants import Action
from neurotrade.core.decision import TradeDecision
from neurotrade.net import protocol
from neurotrade.trading.money_manager import MoneyManager
from neurotrade.utils.logger import LogFeed


@dataclass(frozen=True)
class OrderRequest:
    contract_type: str
    symbol: str
    duration: int              # minutes
    amount: float              # stake
    currency: str
    price: float               # max price we accept to pay
    duration_unit: str = "m"
    basis: str = "stake"


class TradeExecutor:
    """Turns a CALL/PUT decision into a buy frame. Fire-and-forget: the
    outcome comes back later as a settlement push."""

    def __init__(self, cfg: BotConfig, send: Callable[[dict], bool], feed: LogFeed,
                 money_mgr: Optional[MoneyManager] = None):
        self.cfg = cfg
        self.send = send
        self.feed = feed
        self.money_mgr = money_mgr
        self.enabled = cfg.trading_enabled

    def compute_stake(self, raw_stake: float) -> float:
        return max(self.cfg.min_stake, round(raw_stake, 2))

    @staticmethod
    def compute_duration(candles: int, timeframe: int) -> int:
        """Candle count → order duration in whole minutes (never below 1)."""
        return max(1, round(candles * timeframe / 60))

    def build_order(self, decision: TradeDecision, timeframe: int, currency: str) -> OrderRequest:
        if decision.action == Action.HOLD:
            raise ValueError("HOLD decisions do not produce orders")
        stake = self.compute_stake(decision.stake)
        return OrderRequest(
            contract_type=decision.action.value,
            symbol=decision.symbol,
            duration=self.compute_duration(decision.duration, timeframe),
            amount=stake,
            currency=currency,
            price=round(stake + self.cfg.price_slippage, 2),
        )

    def execute(self, decision: TradeDecision, timeframe: int, currency: str) -> Optional[OrderRequest]:
        if decision.action == Action.HOLD:
            return None
        if self.money_mgr is not None and not self.money_mgr.can_trade():
            self.feed.warning(f"Daily loss limit reached — skipping {decision.action.value} on {decision.symbol}")
            return None

        order = self.build_order(decision, timeframe, currency)
        self.feed.ai(
            f"🤖 EXECUTING: {order.contract_type} on {order.symbol}. Stake: ${order.amount}. "
            f"Duration: {order.duration}m ({decision.duration} candles)"
        )
        if not self.send(protocol.buy(order)):
            self.feed.error(f"Order for {order.symbol} not sent — connection is not open")
        return order

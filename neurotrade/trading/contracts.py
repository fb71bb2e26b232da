from collections import deque
from dataclasses import dataclass, replace
from typing import Optional

from neurotrade.constants import ContractStatus
from neurotrade.net.protocol import SettlementPush
from neurotrade.trading.money_manager import MoneyManager
from neurotrade.trading.performance import PerformanceTracker
from neurotrade.utils.logger import LogFeed


@dataclass
class OpenContract:
    contract_id: int
    symbol: str
    contract_type: str
    buy_price: float
    entry_spot: float = 0.0
    status: ContractStatus = ContractStatus.OPEN
    profit: float = 0.0


class ContractTracker:
    """Open positions keyed by contract id, driven by settlement pushes.

    A final (sold) push is the only way a record leaves the open set, and its
    profit is booked once even if the server repeats the push. Only the most
    recent `settled_memory` settled ids are remembered.
    """

    def __init__(self, feed: LogFeed, perf: Optional[PerformanceTracker] = None,
                 money_mgr: Optional[MoneyManager] = None, settled_memory: int = 500):
        self.feed = feed
        self.perf = perf or PerformanceTracker()
        self.money_mgr = money_mgr
        self.open: dict[int, OpenContract] = {}
        self._settled: set[int] = set()
        self._settled_order: deque[int] = deque()
        self.settled_memory = settled_memory

    @property
    def open_contracts(self) -> list[OpenContract]:
        return list(self.open.values())

    @property
    def realized_pnl(self) -> float:
        return self.perf.total_profit

    def on_order_accepted(self, contract_id: int, symbol: str, contract_type: str,
                          buy_price: float) -> Optional[OpenContract]:
        if contract_id in self._settled or contract_id in self.open:
            return self.open.get(contract_id)
        contract = OpenContract(contract_id, symbol, contract_type, buy_price)
        self.open[contract_id] = contract
        return contract

    def apply(self, push: SettlementPush) -> Optional[OpenContract]:
        if push.contract_id in self._settled:
            return None
        if push.is_final:
            return self._settle(push)

        current = self.open.get(push.contract_id)
        if current is None:
            current = OpenContract(push.contract_id, push.symbol, push.contract_type, push.buy_price)
            self.open[push.contract_id] = current
        current.symbol = push.symbol or current.symbol
        current.contract_type = push.contract_type or current.contract_type
        current.buy_price = push.buy_price
        current.entry_spot = push.entry_spot
        current.profit = push.profit
        return current

    def _settle(self, push: SettlementPush) -> OpenContract:
        self._remember_settled(push.contract_id)
        previous = self.open.pop(push.contract_id, None)
        base = previous or OpenContract(push.contract_id, push.symbol, push.contract_type, push.buy_price)
        pl = push.profit
        closed = replace(
            base,
            entry_spot=push.entry_spot or base.entry_spot,
            profit=pl,
            status=ContractStatus.WON if pl > 0 else ContractStatus.LOST,
        )

        self.perf.record(pl)
        if self.money_mgr is not None:
            self.money_mgr.record(pl)

        name = push.display_name or closed.symbol
        message = f"Closed: {name}. P/L: {pl} {push.currency}"
        if pl > 0:
            self.feed.success(message)
        else:
            self.feed.error(message)
        return closed

    def _remember_settled(self, contract_id: int) -> None:
        self._settled.add(contract_id)
        self._settled_order.append(contract_id)
        while len(self._settled_order) > self.settled_memory:
            self._settled.discard(self._settled_order.popleft())

import pytest

from neurotrade.config import BotConfig
from neurotrade.constants import Action, LogType
from neurotrade.core.decision import DecisionError, TradeDecision
from neurotrade.trading.executor import TradeExecutor
from neurotrade.trading.money_manager import MoneyManager
from neurotrade.utils.logger import LogFeed


def _decision(action=Action.CALL, stake=1.0, duration=1, symbol="R_100") -> TradeDecision:
    return TradeDecision(symbol=symbol, action=action, duration=duration, stake=stake,
                         confidence=80, reasoning="test")


def _executor(cfg=None, send_ok=True, money_mgr=None):
    cfg = cfg or BotConfig()
    sent = []

    def send(frame):
        sent.append(frame)
        return send_ok

    feed = LogFeed()
    return TradeExecutor(cfg, send, feed, money_mgr), sent, feed


@pytest.mark.parametrize("raw, expected", [(3.456, 3.46), (0.10, 0.35), (0.35, 0.35), (12.0, 12.0)])
def test_stake_is_rounded_and_floored(raw, expected) -> None:
    executor, _, _ = _executor()
    assert executor.compute_stake(raw) == expected


def test_duration_is_candles_times_timeframe_minutes() -> None:
    assert TradeExecutor.compute_duration(2, 180) == 6
    assert TradeExecutor.compute_duration(1, 60) == 1
    assert TradeExecutor.compute_duration(3, 300) == 15


def test_build_order_maps_action_and_price_ceiling() -> None:
    executor, _, _ = _executor()
    order = executor.build_order(_decision(Action.PUT, stake=3.456, duration=2), 180, "EUR")

    assert order.contract_type == "PUT"
    assert order.symbol == "R_100"
    assert order.amount == 3.46
    assert order.duration == 6
    assert order.duration_unit == "m"
    assert order.basis == "stake"
    assert order.currency == "EUR"
    assert order.price == pytest.approx(103.46)


def test_hold_cannot_become_an_order() -> None:
    executor, sent, _ = _executor()
    with pytest.raises(ValueError):
        executor.build_order(_decision(Action.HOLD), 60, "USD")
    assert executor.execute(_decision(Action.HOLD), 60, "USD") is None
    assert sent == []


def test_execute_sends_buy_frame() -> None:
    executor, sent, feed = _executor()
    executor.execute(_decision(Action.CALL, stake=0.10, duration=3), 60, "USD")

    assert sent == [{
        "buy": 1,
        "price": 100.35,
        "parameters": {
            "contract_type": "CALL",
            "symbol": "R_100",
            "duration": 3,
            "duration_unit": "m",
            "basis": "stake",
            "amount": 0.35,
            "currency": "USD",
        },
    }]
    assert feed.entries()[0].kind == LogType.AI


def test_refused_send_is_reported_not_retried() -> None:
    executor, sent, feed = _executor(send_ok=False)
    executor.execute(_decision(), 60, "USD")

    assert len(sent) == 1
    assert feed.entries()[0].kind == LogType.ERROR


def test_daily_loss_limit_blocks_orders() -> None:
    cfg = BotConfig(max_daily_loss=10.0)
    mm = MoneyManager(cfg)
    executor, sent, feed = _executor(cfg, money_mgr=mm)
    mm.record(-10.0)

    assert executor.execute(_decision(), 60, "USD") is None
    assert sent == []
    assert feed.entries()[0].kind == LogType.WARNING


def test_growth_plan_stake() -> None:
    mm = MoneyManager(BotConfig())
    assert MoneyManager.risk_fraction(50) == 0.12
    assert MoneyManager.risk_fraction(500) == 0.06
    assert MoneyManager.risk_fraction(5000) == 0.03
    assert mm.plan_stake(50.0, 100) == 6.0
    assert mm.plan_stake(5000.0, 50) == 75.0
    assert mm.plan_stake(1.0, 50) == 0.35
    assert mm.plan_stake(0.0, 90) == 0.35


def test_decision_from_mapping_validates_and_clamps() -> None:
    d = TradeDecision.from_mapping("R_100", {
        "action": "call", "duration": 7, "stake": "2.5", "confidence": 140,
        "reasoning": "Bullish Pinbar", "technical_analysis": "wick rejection",
    })
    assert d.action == Action.CALL
    assert d.duration == 3
    assert d.stake == 2.5
    assert d.confidence == 100
    assert d.technical_analysis == "wick rejection"

    with pytest.raises(DecisionError):
        TradeDecision.from_mapping("R_100", {"action": "BUY"})
    with pytest.raises(DecisionError):
        TradeDecision.from_mapping("R_100", ["CALL"])

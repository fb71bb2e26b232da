"""
Deriv websocket frames: parsing inbound JSON into typed messages and building
the outbound requests.

Inbound frames share one envelope (``msg_type``, ``echo_req``, optional
``error``/``subscription``); ``parse_message`` turns each into exactly one of
the dataclasses below so the bot can route on type.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from neurotrade.utils.candle import Candle, parse_candle, to_float


class ProtocolError(ValueError):
    """Frame could not be decoded into a known message."""


@dataclass(frozen=True)
class AuthResult:
    balance: float
    currency: str
    login_id: str


@dataclass(frozen=True)
class ErrorFrame:
    code: str
    message: str
    msg_type: str = ""
    echo: dict = field(default_factory=dict)


@dataclass(frozen=True)
class History:
    symbol: str
    candles: Any                 # raw list, parsed by the aggregator
    granularity: Optional[int] = None
    subscription_id: Optional[str] = None


@dataclass(frozen=True)
class LiveCandle:
    symbol: str
    granularity: int
    candle: Candle
    subscription_id: Optional[str] = None


@dataclass(frozen=True)
class SettlementPush:
    contract_id: int
    is_final: bool
    contract_type: str
    symbol: str
    buy_price: float
    entry_spot: float
    profit: float
    currency: str
    display_name: str


@dataclass(frozen=True)
class BalanceUpdate:
    balance: float
    currency: str = ""


@dataclass(frozen=True)
class OrderAccepted:
    contract_id: int
    buy_price: float
    symbol: str
    contract_type: str
    longcode: str = ""


@dataclass(frozen=True)
class Pong:
    pass


@dataclass(frozen=True)
class Unhandled:
    msg_type: str


Message = Union[AuthResult, ErrorFrame, History, LiveCandle, SettlementPush,
                BalanceUpdate, OrderAccepted, Pong, Unhandled]


def _sub_id(data: dict) -> Optional[str]:
    sub = data.get("subscription") or {}
    return sub.get("id")


def _int_or_none(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_message(data: dict) -> Message:
    """Decode one inbound frame (already JSON-decoded)."""
    if not isinstance(data, dict):
        raise ProtocolError(f"frame is not an object: {data!r}")

    msg_type = data.get("msg_type", "")
    echo = data.get("echo_req") or {}

    if data.get("error"):
        err = data["error"]
        return ErrorFrame(
            code=str(err.get("code", "")),
            message=str(err.get("message", "")),
            msg_type=msg_type,
            echo=echo,
        )

    try:
        if msg_type == "authorize":
            auth = data["authorize"]
            return AuthResult(
                balance=to_float(auth.get("balance")),
                currency=auth.get("currency") or "USD",
                login_id=str(auth.get("loginid", "")),
            )

        if msg_type in ("history", "candles"):
            return History(
                symbol=echo["ticks_history"],
                candles=data.get("candles") or [],
                granularity=_int_or_none(echo.get("granularity")),
                subscription_id=_sub_id(data),
            )

        if msg_type == "ohlc":
            ohlc = data["ohlc"]
            return LiveCandle(
                symbol=ohlc["symbol"],
                granularity=int(ohlc["granularity"]),
                candle=parse_candle(ohlc),
                subscription_id=_sub_id(data),
            )

        if msg_type == "proposal_open_contract":
            poc = data.get("proposal_open_contract") or {}
            if "contract_id" not in poc:
                # Initial reply to the subscribe request when nothing is open.
                return Unhandled(msg_type)
            return SettlementPush(
                contract_id=int(poc["contract_id"]),
                is_final=bool(poc.get("is_sold")),
                contract_type=str(poc.get("contract_type", "")),
                symbol=str(poc.get("underlying", poc.get("underlying_symbol", ""))),
                buy_price=to_float(poc.get("buy_price")),
                entry_spot=to_float(poc.get("entry_spot")),
                profit=to_float(poc.get("profit")),
                currency=str(poc.get("currency", "")),
                display_name=str(poc.get("display_name", "")),
            )

        if msg_type == "balance":
            bal = data["balance"]
            return BalanceUpdate(balance=to_float(bal.get("balance")),
                                 currency=bal.get("currency") or "")

        if msg_type == "buy":
            buy_ = data["buy"]
            params = echo.get("parameters") or {}
            return OrderAccepted(
                contract_id=int(buy_["contract_id"]),
                buy_price=to_float(buy_.get("buy_price")),
                symbol=str(params.get("symbol", "")),
                contract_type=str(params.get("contract_type", "")),
                longcode=str(buy_.get("longcode", "")),
            )

        if msg_type == "ping":
            return Pong()
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ProtocolError(f"malformed {msg_type or 'unknown'} frame: {e}") from e

    return Unhandled(msg_type)


def decode(raw: str | bytes) -> Message:
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ProtocolError(f"invalid JSON: {e}") from e
    return parse_message(data)


# ---------------------------------------------------------------------------
# Outbound requests
# ---------------------------------------------------------------------------
def authorize(token: str) -> dict:
    return {"authorize": token}


def subscribe_balance() -> dict:
    return {"balance": 1, "subscribe": 1}


def subscribe_contracts() -> dict:
    return {"proposal_open_contract": 1, "subscribe": 1}


def candles_request(symbol: str, granularity: int, count: int = 50) -> dict:
    return {
        "ticks_history": symbol,
        "adjust_start_time": 1,
        "count": count,
        "end": "latest",
        "style": "candles",
        "granularity": granularity,
        "subscribe": 1,
    }


def buy(order) -> dict:
    return {
        "buy": 1,
        "price": order.price,
        "parameters": {
            "contract_type": order.contract_type,
            "symbol": order.symbol,
            "duration": order.duration,
            "duration_unit": order.duration_unit,
            "basis": order.basis,
            "amount": order.amount,
            "currency": order.currency,
        },
    }


def ping() -> dict:
    return {"ping": 1}


def forget(subscription_id: str) -> dict:
    return {"forget": subscription_id}


def forget_all(stream_type: str) -> dict:
    return {"forget_all": stream_type}

import math
from dataclasses import dataclass

@dataclass
class Candle:
    epoch: int          # interval start, seconds
    open: float
    high: float
    low: float
    close: float


def to_float(value, default: float = 0.0) -> float:
    """Coerce API numbers (often strings) to float; junk, NaN and inf become ``default``."""
    try:
        num = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(num) or math.isinf(num):
        return default
    return num


def parse_candle(raw) -> Candle:
    """Flexible candle parser — handles dict, list, or object.

    Live ``ohlc`` frames carry the interval start in ``open_time`` while
    history candles use ``epoch``; ``open_time`` wins when both are present.
    """
    if isinstance(raw, dict):
        epoch = raw.get("open_time", raw.get("epoch"))
        if epoch is None:
            raise ValueError(f"candle without epoch: {raw!r}")
        return Candle(
            epoch=int(epoch),
            open=to_float(raw.get("open")),
            high=to_float(raw.get("high")),
            low=to_float(raw.get("low")),
            close=to_float(raw.get("close")),
        )
    elif isinstance(raw, (list, tuple)):
        return Candle(
            epoch=int(raw[0]),
            open=to_float(raw[1]),
            high=to_float(raw[2]),
            low=to_float(raw[3]),
            close=to_float(raw[4]),
        )
    else:
        return Candle(
            epoch=int(getattr(raw, "open_time", getattr(raw, "epoch"))),
            open=to_float(getattr(raw, "open", 0)),
            high=to_float(getattr(raw, "high", 0)),
            low=to_float(getattr(raw, "low", 0)),
            close=to_float(getattr(raw, "close", 0)),
        )

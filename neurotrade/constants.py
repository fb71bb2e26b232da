from enum import Enum

class Action(Enum):
    CALL = "CALL"
    PUT = "PUT"
    HOLD = "HOLD"

class Regime(Enum):
    TRENDING_UP = "trending_up"
    TRENDING_DOWN = "trending_down"
    RANGING = "ranging"
    VOLATILE = "volatile"

class StreamStatus(Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    ERROR = "error"

class ContractStatus(Enum):
    OPEN = "open"
    WON = "won"
    LOST = "lost"

class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    LIVE = "live"

class LogType(Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    AI = "ai"
    WARNING = "warning"
    DEBUG = "debug"

# Error code the API sends while a market is shut; not worth showing.
MARKET_CLOSED_CODE = "MarketIsClosed"

AVAILABLE_SYMBOLS = {
    "R_100": "Volatility 100",
    "R_75": "Volatility 75",
    "R_50": "Volatility 50",
    "R_25": "Volatility 25",
    "R_10": "Volatility 10",
    "1HZ100V": "Vol. 100 (1s)",
    "1HZ75V": "Vol. 75 (1s)",
    "1HZ50V": "Vol. 50 (1s)",
    "1HZ25V": "Vol. 25 (1s)",
    "1HZ10V": "Vol. 10 (1s)",
    "frxEURUSD": "EUR/USD",
    "frxGBPUSD": "GBP/USD",
    "frxUSDJPY": "USD/JPY",
    "frxXAUUSD": "Gold/USD",
    "cryBTCUSD": "BTC/USD",
}

TIMEFRAMES = {
    60: "1 Minute",
    180: "3 Minutes",
    300: "5 Minutes",
}


def display_name(symbol: str) -> str:
    return AVAILABLE_SYMBOLS.get(symbol, symbol)

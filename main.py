import asyncio
import os
import sys

from dotenv import load_dotenv

from neurotrade.bot import TradingBot
from neurotrade.config import BotConfig
from neurotrade.constants import TIMEFRAMES


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"Warning: Invalid {name} '{raw}', defaulting to {default}")
        return default


def main():
    load_dotenv()

    # --- Load config from env or defaults ---
    defaults = BotConfig()
    symbols_str = os.environ.get("NT_SYMBOLS", "")
    symbols = [s.strip() for s in symbols_str.split(",") if s.strip()] or defaults.symbols

    timeframe = int(_env_float("NT_TIMEFRAME", defaults.timeframe))
    if timeframe not in TIMEFRAMES:
        print(f"Warning: Invalid NT_TIMEFRAME '{timeframe}', defaulting to {defaults.timeframe}")
        timeframe = defaults.timeframe

    cfg = BotConfig(
        token=os.environ.get("DERIV_TOKEN", ""),
        app_id=int(_env_float("DERIV_APP_ID", defaults.app_id)),
        symbols=symbols,
        timeframe=timeframe,
        min_stake=_env_float("NT_MIN_STAKE", defaults.min_stake),
        max_daily_loss=_env_float("NT_MAX_DAILY_LOSS", defaults.max_daily_loss),
        trading_enabled=os.environ.get("NT_TRADING", "").strip().lower() in ("1", "true", "yes", "on"),
    )

    if not cfg.token:
        print("=" * 60)
        print("  ERROR: No API token provided!")
        print()
        print("  Set your Deriv API token:")
        print("    export DERIV_TOKEN='your-token-here'  # Linux/Mac")
        print("    set DERIV_TOKEN=your-token-here       # Windows")
        print()
        print("  Or create a .env file with your configuration.")
        print("=" * 60)
        sys.exit(1)

    bot = TradingBot(cfg)

    async def run():
        try:
            await bot.start()
        except Exception as e:
            print(f"Critical error: {e}")
            await bot.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass

if __name__ == "__main__":
    main()

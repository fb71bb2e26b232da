from dataclasses import dataclass, field

@dataclass
class BotConfig:
    """All tuneable knobs in one place."""

    # --- connection ---
    token: str = ""                         # Deriv API token
    app_id: int = 1089                      # public app id for testing
    ws_url: str = "wss://ws.binaryws.com/websockets/v3?app_id={app_id}"
    keepalive_interval: float = 10.0        # ping every 10s while live

    # --- markets ---
    symbols: list = field(default_factory=lambda: ["R_100", "R_50", "1HZ100V"])
    timeframe: int = 60                     # candle period in seconds (60/180/300)
    history_count: int = 50                 # candles requested per backfill
    max_candles: int = 60                   # per-symbol buffer cap
    resubscribe_delay: float = 0.2          # let forget_all settle before resubscribing

    # --- analysis queue ---
    min_analysis_candles: int = 5           # shorter windows are never analysed
    initial_analysis_candles: int = 10      # backfill size that triggers a first look
    decision_window: int = 20               # candles handed to the decision engine
    analysis_timeout: float = 60.0          # seconds before a decision call is abandoned
    queue_cooldown: float = 0.5             # pause between queued analyses

    # --- money management ---
    trading_enabled: bool = False           # auto-trading switch
    min_stake: float = 0.35                 # broker minimum ($)
    price_slippage: float = 100.0           # added to stake for the buy price ceiling
    max_daily_loss: float = 0.0             # stop trading for the day (0 = off)

    # --- misc ---
    log_feed_size: int = 150                # entries kept for display

    @property
    def url(self) -> str:
        return self.ws_url.format(app_id=self.app_id)

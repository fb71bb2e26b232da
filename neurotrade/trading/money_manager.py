from datetime import datetime, timezone
import logging
from neurotrade.config import BotConfig

log = logging.getLogger("NeuroTrade")

# (balance ceiling, fraction of balance risked) — aggressive while small,
# tapering as the account grows.
GROWTH_PLAN = (
    (100.0, 0.12),
    (1000.0, 0.06),
    (float("inf"), 0.03),
)

class MoneyManager:
    def __init__(self, cfg: BotConfig):
        self.cfg = cfg
        self.daily_pnl = 0.0
        self.day_start = datetime.now(timezone.utc).date()

    def reset_if_new_day(self):
        today = datetime.now(timezone.utc).date()
        if today != self.day_start:
            log.info("New day — resetting daily P&L tracker")
            self.daily_pnl = 0.0
            self.day_start = today

    def can_trade(self) -> bool:
        if self.cfg.max_daily_loss <= 0:
            return True
        self.reset_if_new_day()
        return self.daily_pnl > -self.cfg.max_daily_loss

    @staticmethod
    def risk_fraction(balance: float) -> float:
        for ceiling, fraction in GROWTH_PLAN:
            if balance < ceiling:
                return fraction
        return GROWTH_PLAN[-1][1]

    def plan_stake(self, balance: float, confidence: float) -> float:
        """Growth-plan stake scaled by confidence (0–100), floored at the broker minimum."""
        if balance <= 0:
            return self.cfg.min_stake
        stake = balance * self.risk_fraction(balance)
        # Scale by confidence
        stake *= max(0.0, min(confidence, 100.0)) / 100.0
        return round(max(self.cfg.min_stake, stake), 2)

    def record(self, pnl: float):
        self.reset_if_new_day()
        self.daily_pnl += pnl

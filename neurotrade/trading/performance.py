from collections import deque

class PerformanceTracker:
    def __init__(self):
        self.wins = 0
        self.losses = 0
        self.draws = 0
        self.total_profit = 0.0
        self.consec_losses = 0
        self.max_drawdown = 0.0
        self._peak = 0.0
        self.recent_results: deque[str] = deque(maxlen=100)

    @property
    def total(self):
        return self.wins + self.losses + self.draws

    @property
    def win_rate(self):
        t = self.wins + self.losses
        return self.wins / t if t > 0 else 0.5

    def record(self, profit: float) -> str:
        """Book a settled contract; the sign of ``profit`` decides the result."""
        if profit > 0:
            result = "win"
            self.wins += 1
            self.consec_losses = 0
        elif profit < 0:
            result = "loss"
            self.losses += 1
            self.consec_losses += 1
        else:
            result = "draw"
            self.draws += 1
        self.recent_results.append(result)
        self.total_profit += profit

        # Drawdown
        if self.total_profit > self._peak:
            self._peak = self.total_profit
        dd = self._peak - self.total_profit
        if dd > self.max_drawdown:
            self.max_drawdown = dd
        return result

    def summary(self, currency: str = "USD") -> str:
        streak = f"L{self.consec_losses}" if self.consec_losses else "OK"
        return (
            f"W:{self.wins} L:{self.losses} D:{self.draws} "
            f"WR:{self.win_rate:.1%} "
            f"P&L:{self.total_profit:+.2f} {currency} "
            f"MaxDD:{self.max_drawdown:.2f} "
            f"Streak:{streak}"
        )

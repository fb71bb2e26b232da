from dataclasses import dataclass

from neurotrade.utils.candle import to_float

@dataclass
class Account:
    balance: float = 0.0
    currency: str = "USD"
    login_id: str = ""

    def apply_auth(self, balance, currency: str, login_id: str) -> None:
        self.balance = to_float(balance)
        self.currency = currency or self.currency
        self.login_id = login_id or ""

    def apply_balance(self, balance, currency: str = "") -> None:
        self.balance = to_float(balance)
        if currency:
            self.currency = currency

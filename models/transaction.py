"""
Transaction model - one immutable entry in a user's ledger.
"""

from typing import Optional
from datetime import date, datetime
from sqlmodel import SQLModel, Field


class Transaction(SQLModel, table=True):
    """Represents a buy/sell/invest/withdraw entry for a user."""
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(foreign_key="accountbalance.username", index=True)
    transaction_date: date = Field(index=True)
    stock: Optional[str] = Field(default=None, max_length=100)  # None for invest/withdraw
    action: str  # "buy", "sell", "invest" or "withdraw"
    amount: float
    created_at: datetime = Field(default_factory=datetime.now)  # Tie-breaker for same-date entries


# Cash effect of each action kind
ACTION_SIGNS = {
    "buy": -1,
    "sell": 1,
    "invest": 1,
    "withdraw": -1,
}

# Amounts and derived balances/holdings are kept to this many decimal places
AMOUNT_PRECISION = 8

# Two amounts closer than this are equal; shared by sufficiency checks, holdings and reconciliation
TOLERANCE = 0.5 * 10 ** -AMOUNT_PRECISION


def round_amount(value: float) -> float:
    """Round an amount or a derived sum to AMOUNT_PRECISION, dropping float noise."""
    return round(value, AMOUNT_PRECISION)

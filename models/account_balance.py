"""
AccountBalance model - per-user ledger anchor holding the cached cash balance.
"""

from datetime import datetime
from sqlmodel import SQLModel, Field


class AccountBalance(SQLModel, table=True):
    """
    One row per provisioned user.
    The balance is a cache of the fold over the user's transactions;
    version increments on every append and guards the compare-and-swap.
    """
    username: str = Field(primary_key=True, max_length=100)
    balance: float = Field(default=0.0)
    version: int = Field(default=0)
    updated_at: datetime = Field(default_factory=datetime.now)

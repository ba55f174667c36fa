"""
Database models for PaperLedger.
All SQLModel table definitions are centralized here.
"""

from models.user import User
from models.account_balance import AccountBalance
from models.transaction import (
    Transaction,
    ACTION_SIGNS,
    AMOUNT_PRECISION,
    TOLERANCE,
    round_amount,
)

__all__ = [
    'User',
    'AccountBalance',
    'Transaction',
    'ACTION_SIGNS',
    'AMOUNT_PRECISION',
    'TOLERANCE',
    'round_amount',
]

"""
Repositories package for PaperLedger.
Provides data access layer for all database operations.
"""

from repositories.ledger_repository import LedgerRepository
from repositories.user_repository import UserRepository

__all__ = [
    'LedgerRepository',
    'UserRepository',
]

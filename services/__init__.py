"""
Services package for PaperLedger.
Provides core business logic separated from presentation and data layers.
"""

from services.common import (
    VALID_ACTIONS,
    STOCK_ACTIONS,
    DEBIT_ACTIONS,
    signed_amount,
    fold_balance,
    normalize_stock,
    TransactionRequest,
    LedgerSnapshot,
    Rejection,
    transactions_to_frame,
    balance_history,
)
from services.trading import TradingService
from services.accounts import AccountService, hash_password, verify_password

__all__ = [
    # Accounting rules
    'VALID_ACTIONS',
    'STOCK_ACTIONS',
    'DEBIT_ACTIONS',
    'signed_amount',
    'fold_balance',
    'normalize_stock',
    'TransactionRequest',
    'LedgerSnapshot',
    'Rejection',
    'transactions_to_frame',
    'balance_history',
    # Services
    'TradingService',
    'AccountService',
    'hash_password',
    'verify_password',
]

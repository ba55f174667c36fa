"""
Common accounting rules and result types for the service layer.
Request parsing, balance folds, and the balance-over-time series.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from exceptions import LedgerError, ValidationError
from models.transaction import ACTION_SIGNS, round_amount


VALID_ACTIONS = tuple(ACTION_SIGNS)

# Actions that carry an instrument label
STOCK_ACTIONS = ("buy", "sell")

# Actions that spend cash and need a funded balance
DEBIT_ACTIONS = ("buy", "withdraw")


def signed_amount(action: str, amount: float) -> float:
    """
    Cash effect of a single transaction.

    Examples:
        >>> signed_amount("invest", 100.0)
        100.0
        >>> signed_amount("buy", 40.0)
        -40.0
    """
    try:
        return ACTION_SIGNS[action] * amount
    except KeyError:
        raise ValidationError(f"Invalid action: {action!r}")


def fold_balance(transactions: Iterable[Any]) -> float:
    """Sum sign(action) * amount over a sequence of transactions."""
    return sum((signed_amount(tx.action, tx.amount) for tx in transactions), 0.0)


def normalize_stock(stock: Optional[str]) -> Optional[str]:
    """Strip a free-text instrument label; blank labels become None."""
    if stock is None:
        return None
    stock = str(stock).strip()
    return stock or None


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        # Full ISO-8601 date or datetime; anything after it is an error
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            raise ValidationError(f"Invalid date: {value!r}")
    raise ValidationError("Missing required field: date")


def _parse_amount(value: Any) -> float:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError("Missing required field: amount")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid amount")
    if not math.isfinite(amount):
        raise ValidationError("Invalid amount")
    amount = round_amount(amount)
    if amount <= 0:
        raise ValidationError("Invalid amount")
    return amount


@dataclass(frozen=True)
class TransactionRequest:
    """
    A validated transaction proposal.
    Built from the raw form payload via from_dict(); holds no balance state.
    """
    transaction_date: date
    action: str
    amount: float
    stock: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransactionRequest":
        """
        Parse and validate a raw request.

        Args:
            data: Mapping with "date", "stock", "amount" and "action" keys

        Returns:
            TransactionRequest with a parsed date, float amount and cleaned label

        Raises:
            ValidationError: on any missing or malformed field
        """
        if not isinstance(data, dict):
            raise ValidationError("Transaction request must be an object")

        action = data.get("action")
        if not action:
            raise ValidationError("Missing required field: action")
        action = str(action).strip().lower()
        if action not in ACTION_SIGNS:
            raise ValidationError("Invalid action")

        transaction_date = _parse_date(data.get("date"))
        amount = _parse_amount(data.get("amount"))

        stock = normalize_stock(data.get("stock"))
        if action in STOCK_ACTIONS:
            if stock is None:
                raise ValidationError("Please enter a stock symbol")
        else:
            stock = None

        return cls(
            transaction_date=transaction_date,
            action=action,
            amount=amount,
            stock=stock
        )


def transactions_to_frame(log: Iterable[Any]) -> pd.DataFrame:
    """
    Tabular view of a log for display, keeping the log's order.
    Amounts are shown signed: positive for sell/invest, negative for buy/withdraw.
    """
    rows = [
        {
            "Date": tx.transaction_date,
            "Action": tx.action.upper(),
            "Stock": tx.stock or "-",
            "Amount": signed_amount(tx.action, tx.amount),
        }
        for tx in log
    ]
    return pd.DataFrame(rows, columns=["Date", "Action", "Stock", "Amount"])


def balance_history(log: Iterable[Any]) -> pd.DataFrame:
    """
    Running balance in chronological order.

    Args:
        log: Transactions, in any order (the ledger returns most recent first)

    Returns:
        DataFrame with "date" and "balance" columns, one row per transaction,
        oldest first; empty when the log is empty
    """
    entries = sorted(
        log,
        key=lambda tx: (tx.transaction_date, tx.created_at, tx.id or 0)
    )
    if not entries:
        return pd.DataFrame(columns=["date", "balance"])

    frame = pd.DataFrame({
        "date": [tx.transaction_date for tx in entries],
        "change": [signed_amount(tx.action, tx.amount) for tx in entries],
    })
    frame["balance"] = frame["change"].cumsum()
    return frame[["date", "balance"]]


@dataclass
class LedgerSnapshot:
    """A user's log (most recent first) together with the balance it folds to."""
    log: List[Any]
    balance: float

    @property
    def ok(self) -> bool:
        return True


@dataclass
class Rejection:
    """
    Tagged failure value handed back to the UI instead of an exception.
    kind is the error class name; have/want are set for sufficiency failures.
    """
    kind: str
    detail: str
    have: Optional[float] = None
    want: Optional[float] = None

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def from_error(cls, error: LedgerError) -> "Rejection":
        return cls(
            kind=error.kind,
            detail=str(error),
            have=getattr(error, "have", None),
            want=getattr(error, "want", None)
        )

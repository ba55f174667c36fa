"""Accounting rules and request parsing tests"""

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from exceptions import InsufficientFundsError, InsufficientHoldingsError, ValidationError
from services.common import (
    Rejection,
    TransactionRequest,
    balance_history,
    fold_balance,
    signed_amount,
    transactions_to_frame,
)


def make_tx(action, amount, day, stock=None, created=None, tx_id=None):
    return SimpleNamespace(
        action=action,
        amount=amount,
        stock=stock,
        transaction_date=date(2024, 1, day),
        created_at=created or datetime(2024, 1, day, 12, 0),
        id=tx_id,
    )


class TestSignedAmount:
    """Cash effect of each action kind"""

    @pytest.mark.parametrize("action,expected", [
        ("sell", 10.0),
        ("invest", 10.0),
        ("buy", -10.0),
        ("withdraw", -10.0),
    ])
    def test_signs(self, action: str, expected: float) -> None:
        assert signed_amount(action, 10.0) == expected

    def test_unknown_action(self) -> None:
        with pytest.raises(ValidationError):
            signed_amount("profit", 10.0)

    def test_fold_balance(self) -> None:
        log = [
            make_tx("invest", 100.0, 1),
            make_tx("buy", 50.0, 2, "AAPL"),
            make_tx("sell", 30.0, 3, "AAPL"),
            make_tx("withdraw", 5.0, 4),
        ]
        assert fold_balance(log) == 75.0

    def test_fold_empty(self) -> None:
        assert fold_balance([]) == 0.0


class TestTransactionRequest:
    """TransactionRequest.from_dict validation"""

    def test_valid_buy(self) -> None:
        req = TransactionRequest.from_dict(
            {"date": "2024-03-01", "stock": " AAPL ", "amount": 50, "action": "buy"}
        )
        assert req.transaction_date == date(2024, 3, 1)
        assert req.stock == "AAPL"
        assert req.amount == 50.0
        assert req.action == "buy"

    def test_invest_drops_stock(self) -> None:
        req = TransactionRequest.from_dict(
            {"date": "2024-03-01", "stock": "AAPL", "amount": 10, "action": "invest"}
        )
        assert req.stock is None

    def test_numeric_string_amount(self) -> None:
        req = TransactionRequest.from_dict(
            {"date": "2024-03-01", "amount": "12.5", "action": "withdraw"}
        )
        assert req.amount == 12.5

    def test_accepts_date_objects(self) -> None:
        req = TransactionRequest.from_dict(
            {"date": date(2024, 3, 1), "amount": 1, "action": "invest"}
        )
        assert req.transaction_date == date(2024, 3, 1)

    def test_action_is_case_insensitive(self) -> None:
        req = TransactionRequest.from_dict(
            {"date": "2024-03-01", "amount": 1, "action": "INVEST"}
        )
        assert req.action == "invest"

    def test_datetime_string_keeps_date(self) -> None:
        req = TransactionRequest.from_dict(
            {"date": "2024-03-01T10:30:00", "amount": 1, "action": "invest"}
        )
        assert req.transaction_date == date(2024, 3, 1)

    def test_amount_is_rounded(self) -> None:
        req = TransactionRequest.from_dict(
            {"date": "2024-03-01", "amount": 0.1 + 0.2, "action": "invest"}
        )
        assert req.amount == 0.3

    @pytest.mark.parametrize("amount", [0, -5, "abc", "", None, float("nan"), float("inf"), True, 1e-10])
    def test_rejects_bad_amount(self, amount) -> None:
        with pytest.raises(ValidationError):
            TransactionRequest.from_dict(
                {"date": "2024-03-01", "amount": amount, "action": "invest"}
            )

    @pytest.mark.parametrize("value", [None, "", "not-a-date", "2024-13-40", "2024-01-01garbage", "2024-01-01 junk"])
    def test_rejects_bad_date(self, value) -> None:
        with pytest.raises(ValidationError):
            TransactionRequest.from_dict({"date": value, "amount": 1, "action": "invest"})

    @pytest.mark.parametrize("action", [None, "", "profit", "loss"])
    def test_rejects_unknown_action(self, action) -> None:
        with pytest.raises(ValidationError):
            TransactionRequest.from_dict({"date": "2024-03-01", "amount": 1, "action": action})

    @pytest.mark.parametrize("action", ["buy", "sell"])
    @pytest.mark.parametrize("stock", [None, "", "   "])
    def test_stock_required_for_trades(self, action: str, stock) -> None:
        with pytest.raises(ValidationError):
            TransactionRequest.from_dict(
                {"date": "2024-03-01", "stock": stock, "amount": 1, "action": action}
            )

    def test_rejects_non_mapping(self) -> None:
        with pytest.raises(ValidationError):
            TransactionRequest.from_dict(["2024-03-01", 1, "invest"])


class TestBalanceHistory:
    """Balance-over-time series"""

    def test_empty_log(self) -> None:
        frame = balance_history([])
        assert frame.empty
        assert list(frame.columns) == ["date", "balance"]

    def test_running_total_is_chronological(self) -> None:
        # Most recent first, as the ledger returns it
        log = [
            make_tx("sell", 30.0, 3, "AAPL"),
            make_tx("buy", 50.0, 2, "AAPL"),
            make_tx("invest", 100.0, 1),
        ]
        frame = balance_history(log)
        assert list(frame["balance"]) == [100.0, 50.0, 80.0]
        assert list(frame["date"]) == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    def test_same_date_ordered_by_creation(self) -> None:
        log = [
            make_tx("withdraw", 20.0, 1, created=datetime(2024, 1, 1, 15, 0)),
            make_tx("invest", 100.0, 1, created=datetime(2024, 1, 1, 9, 0)),
        ]
        frame = balance_history(log)
        assert list(frame["balance"]) == [100.0, 80.0]


class TestTransactionsFrame:
    """Tabular view of the log"""

    def test_signed_amounts_and_labels(self) -> None:
        log = [make_tx("buy", 50.0, 2, "AAPL"), make_tx("invest", 100.0, 1)]
        frame = transactions_to_frame(log)
        assert list(frame["Action"]) == ["BUY", "INVEST"]
        assert list(frame["Stock"]) == ["AAPL", "-"]
        assert list(frame["Amount"]) == [-50.0, 100.0]


class TestRejection:
    """Rejection values built from errors"""

    def test_from_funds_error(self) -> None:
        rejection = Rejection.from_error(InsufficientFundsError(have=100.0, want=150.0))
        assert rejection.kind == "InsufficientFundsError"
        assert rejection.have == 100.0
        assert rejection.want == 150.0
        assert not rejection.ok

    def test_from_holdings_error_without_position(self) -> None:
        rejection = Rejection.from_error(InsufficientHoldingsError(have=0.0, want=10.0, instrument="tsla"))
        assert rejection.kind == "InsufficientHoldingsError"
        assert "TSLA" in rejection.detail

    def test_from_validation_error(self) -> None:
        rejection = Rejection.from_error(ValidationError("Invalid amount"))
        assert rejection.kind == "ValidationError"
        assert rejection.detail == "Invalid amount"
        assert rejection.have is None

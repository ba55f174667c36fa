"""
Ledger Repository - data access layer for the per-user transaction log and cached balance.
One logical ledger keyed by username; every method accepts an optional session for
transaction reuse so callers can validate and append inside one unit of work.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from db_engine import get_engine
from exceptions import ConcurrentModificationError, StorageError
from models import ACTION_SIGNS, TOLERANCE, AccountBalance, Transaction, round_amount

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run(operation: Callable[[Session], T], session: Optional[Session] = None) -> T:
    """Run operation in the given session (or a fresh one), mapping DB failures to StorageError."""
    try:
        if session is not None:
            return operation(session)
        with Session(get_engine()) as new_session:
            return operation(new_session)
    except SQLAlchemyError as e:
        if session is not None:
            session.rollback()
        logger.error(f"Ledger storage failure: {e}")
        raise StorageError("Storage failure") from e


def _totals_by_action(sess: Session, *conditions) -> Dict[str, float]:
    statement = (
        select(Transaction.action, func.sum(Transaction.amount))
        .where(*conditions)
        .group_by(Transaction.action)
    )
    return {action: total or 0.0 for action, total in sess.exec(statement).all()}


def _fold_totals(totals: Dict[str, float]) -> float:
    return round_amount(sum((ACTION_SIGNS[action] * total for action, total in totals.items()), 0.0))


class LedgerRepository:
    """Repository for ledger provisioning, appends, and derived state."""

    @staticmethod
    def ensure_user(username: str, session: Optional[Session] = None) -> AccountBalance:
        """
        Provision the ledger for a user. No-op if already provisioned.

        Args:
            username: Owner of the ledger
            session: Optional existing session for transaction reuse

        Returns:
            The user's AccountBalance record
        """
        def _ensure(sess: Session) -> AccountBalance:
            record = sess.get(AccountBalance, username)
            if record is not None:
                return record

            record = AccountBalance(username=username)
            sess.add(record)
            try:
                sess.commit()
            except IntegrityError:
                # Provisioned concurrently by another request
                sess.rollback()
                return sess.get(AccountBalance, username)
            sess.refresh(record)
            logger.info(f"Provisioned ledger for {username}")
            return record

        return _run(_ensure, session)

    @staticmethod
    def append_transaction(
        username: str,
        tx,
        expected_version: Optional[int] = None,
        session: Optional[Session] = None
    ) -> AccountBalance:
        """
        Append a transaction and recompute the cached balance in the same commit.

        Args:
            username: Owner of the ledger
            tx: Object with transaction_date, stock, action and amount attributes
            expected_version: Balance version the caller validated against; when given,
                the append only commits if the record still carries that version
            session: Optional existing session for transaction reuse

        Returns:
            The updated AccountBalance record

        Raises:
            ConcurrentModificationError: expected_version no longer matches
            StorageError: ledger not provisioned, or the database failed
        """
        def _append(sess: Session) -> AccountBalance:
            record = sess.get(AccountBalance, username)
            if record is None:
                raise StorageError(f"No ledger provisioned for {username}")
            version = record.version if expected_version is None else expected_version

            sess.add(Transaction(
                username=username,
                transaction_date=tx.transaction_date,
                stock=tx.stock,
                action=tx.action,
                amount=round_amount(tx.amount)
            ))
            sess.flush()

            new_balance = _fold_totals(
                _totals_by_action(sess, Transaction.username == username)
            )
            result = sess.connection().execute(
                update(AccountBalance)
                .where(
                    AccountBalance.username == username,
                    AccountBalance.version == version
                )
                .values(balance=new_balance, version=version + 1, updated_at=datetime.now())
            )
            if result.rowcount != 1:
                sess.rollback()
                raise ConcurrentModificationError(
                    f"Ledger for {username} changed since version {version}"
                )

            sess.commit()
            sess.refresh(record)
            logger.debug(f"Appended {tx.action} {tx.amount} for {username}; balance {new_balance}")
            return record

        return _run(_append, session)

    @staticmethod
    def get_log(username: str, session: Optional[Session] = None) -> List[Transaction]:
        """
        Retrieve a user's transactions, most recent first.
        Ordered by date, then creation timestamp, then id, all descending.

        Args:
            username: Owner of the ledger
            session: Optional existing session for transaction reuse

        Returns:
            List of Transaction objects (empty if none)
        """
        def _get_log(sess: Session) -> List[Transaction]:
            statement = (
                select(Transaction)
                .where(Transaction.username == username)
                .order_by(
                    Transaction.transaction_date.desc(),
                    Transaction.created_at.desc(),
                    Transaction.id.desc()
                )
            )
            return list(sess.exec(statement).all())

        return _run(_get_log, session)

    @staticmethod
    def get_balance_record(username: str, session: Optional[Session] = None) -> Optional[AccountBalance]:
        """Retrieve the user's AccountBalance record, or None if not provisioned."""
        return _run(lambda sess: sess.get(AccountBalance, username), session)

    @staticmethod
    def get_balance(username: str, session: Optional[Session] = None) -> float:
        """Current cached balance, 0.0 when the user has no balance record."""
        record = LedgerRepository.get_balance_record(username, session)
        return record.balance if record is not None else 0.0

    @staticmethod
    def compute_balance(username: str, session: Optional[Session] = None) -> float:
        """Recompute the balance from the full log, ignoring the cache."""
        def _compute(sess: Session) -> float:
            return _fold_totals(_totals_by_action(sess, Transaction.username == username))

        return _run(_compute, session)

    @staticmethod
    def get_holding_quantity(
        username: str,
        instrument: Optional[str],
        session: Optional[Session] = None
    ) -> float:
        """
        Net quantity of an instrument: bought minus sold.

        Args:
            username: Owner of the ledger
            instrument: Instrument label, matched case-insensitively
            session: Optional existing session for transaction reuse

        Returns:
            Holding quantity, 0.0 if never traded
        """
        label = (instrument or "").strip().lower()
        if not label:
            return 0.0

        def _holding(sess: Session) -> float:
            totals = _totals_by_action(
                sess,
                Transaction.username == username,
                Transaction.action.in_(("buy", "sell")),
                func.lower(Transaction.stock) == label
            )
            return round_amount(totals.get("buy", 0.0) - totals.get("sell", 0.0))

        return _run(_holding, session)

    @staticmethod
    def get_holdings(username: str, session: Optional[Session] = None) -> Dict[str, float]:
        """
        Net quantity of every instrument the user still holds.

        Returns:
            Mapping of upper-cased label to quantity, zero positions omitted
        """
        def _holdings(sess: Session) -> Dict[str, float]:
            label = func.upper(Transaction.stock)
            statement = (
                select(label, Transaction.action, func.sum(Transaction.amount))
                .where(
                    Transaction.username == username,
                    Transaction.action.in_(("buy", "sell")),
                    Transaction.stock.is_not(None)
                )
                .group_by(label, Transaction.action)
            )
            holdings: Dict[str, float] = {}
            for stock, action, total in sess.exec(statement).all():
                holdings[stock] = holdings.get(stock, 0.0) + (total if action == "buy" else -total)
            return {
                stock: round_amount(qty)
                for stock, qty in sorted(holdings.items())
                if abs(qty) > TOLERANCE
            }

        return _run(_holdings, session)

    @staticmethod
    def reconcile_balance(username: str, session: Optional[Session] = None) -> Tuple[float, float]:
        """
        Overwrite the cached balance with a full recomputation from the log.

        Returns:
            Tuple of (cached balance before, recomputed balance)

        Raises:
            StorageError: ledger not provisioned, or the database failed
        """
        def _reconcile(sess: Session) -> Tuple[float, float]:
            record = sess.get(AccountBalance, username)
            if record is None:
                raise StorageError(f"No ledger provisioned for {username}")
            old_balance = record.balance
            new_balance = _fold_totals(_totals_by_action(sess, Transaction.username == username))
            record.balance = new_balance
            record.version += 1
            record.updated_at = datetime.now()
            sess.add(record)
            sess.commit()
            return old_balance, new_balance

        return _run(_reconcile, session)

    @staticmethod
    def list_usernames(session: Optional[Session] = None) -> List[str]:
        """Usernames of every provisioned ledger."""
        def _list(sess: Session) -> List[str]:
            statement = select(AccountBalance.username).order_by(AccountBalance.username)
            return list(sess.exec(statement).all())

        return _run(_list, session)

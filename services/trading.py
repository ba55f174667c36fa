"""
Trading service - validates proposed transactions against current ledger state and applies them.
Every request ends Applied or Rejected; a rejected request leaves the ledger untouched.
Same-user submissions serialize through an optimistic compare-and-swap on the balance version,
retried with tenacity.
"""

import logging
from typing import Any, Dict, Union

from sqlmodel import Session
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from config import get_settings
from db_engine import get_session
from exceptions import (
    ConcurrentModificationError,
    InsufficientFundsError,
    InsufficientHoldingsError,
    LedgerError,
    StorageError,
    ValidationError,
)
from models import TOLERANCE
from repositories.ledger_repository import LedgerRepository
from services.common import DEBIT_ACTIONS, LedgerSnapshot, Rejection, TransactionRequest

logger = logging.getLogger(__name__)


class TradingService:
    """
    Service for submitting transactions and reading ledger snapshots.
    All LedgerErrors are returned as Rejection values, never raised to the caller.
    """

    @staticmethod
    def submit(
        username: str,
        request: Union[TransactionRequest, Dict[str, Any]]
    ) -> Union[LedgerSnapshot, Rejection]:
        """
        Validate and apply a transaction.

        Args:
            username: Authenticated owner of the ledger
            request: TransactionRequest, or a raw {date, stock, amount, action} mapping

        Returns:
            LedgerSnapshot with the updated log and balance, or a Rejection
        """
        try:
            if not username:
                raise ValidationError("Missing required field: user")
            if not isinstance(request, TransactionRequest):
                request = TransactionRequest.from_dict(request)

            settings = get_settings()
            retrying = Retrying(
                stop=stop_after_attempt(settings.max_submit_attempts),
                wait=wait_exponential(multiplier=0.01, max=0.1),
                retry=retry_if_exception_type(ConcurrentModificationError),
                reraise=True
            )
            for attempt in retrying:
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.info(f"Retrying {request.action} for {username} after concurrent update")
                    snapshot = TradingService._apply(username, request)

            logger.info(f"Applied {request.action} {request.amount} for {username}; balance {snapshot.balance:.2f}")
            return snapshot

        except LedgerError as e:
            return TradingService._reject(username, e)

    @staticmethod
    def snapshot(username: str) -> Union[LedgerSnapshot, Rejection]:
        """
        Current log and balance for a user, provisioning the ledger if missing.
        Used to populate the dashboard at login.
        """
        try:
            if not username:
                raise ValidationError("Missing required field: user")
            LedgerRepository.ensure_user(username)
            with get_session() as session:
                log = LedgerRepository.get_log(username, session)
                balance = LedgerRepository.get_balance(username, session)
            return LedgerSnapshot(log=log, balance=balance)
        except LedgerError as e:
            return TradingService._reject(username, e)

    @staticmethod
    def _apply(username: str, request: TransactionRequest) -> LedgerSnapshot:
        """
        Check sufficiency and append inside one session; raises on rejection.
        The ledger is provisioned only once the request has passed its checks.
        """
        with get_session() as session:
            record = LedgerRepository.get_balance_record(username, session)
            version = record.version if record is not None else 0

            TradingService._check_sufficiency(username, request, session)

            if record is None:
                LedgerRepository.ensure_user(username, session)
            LedgerRepository.append_transaction(
                username, request, expected_version=version, session=session
            )
            log = LedgerRepository.get_log(username, session)
            balance = LedgerRepository.get_balance(username, session)
        return LedgerSnapshot(log=log, balance=balance)

    @staticmethod
    def _check_sufficiency(username: str, request: TransactionRequest, session: Session) -> None:
        """
        Enforce solvency against state derived from the log, not the cached balance.

        Raises:
            InsufficientHoldingsError: sell of more than is held
            InsufficientFundsError: buy or withdraw of more than the balance
        """
        if request.action == "sell":
            holding = LedgerRepository.get_holding_quantity(username, request.stock, session)
            if holding <= TOLERANCE or request.amount - holding > TOLERANCE:
                raise InsufficientHoldingsError(
                    have=holding, want=request.amount, instrument=request.stock
                )
        elif request.action in DEBIT_ACTIONS:
            balance = LedgerRepository.compute_balance(username, session)
            if request.amount - balance > TOLERANCE:
                raise InsufficientFundsError(have=balance, want=request.amount)

    @staticmethod
    def _reject(username: str, error: LedgerError) -> Rejection:
        if isinstance(error, StorageError):
            logger.error(f"Request for {username} failed: {error}")
            return Rejection(kind="StorageError", detail="Transaction failed")
        logger.info(f"Rejected request for {username}: {error.kind}: {error}")
        return Rejection.from_error(error)

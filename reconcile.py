"""
Balance reconciliation script for PaperLedger.
Recomputes every cached balance from its transaction log and repairs any drift.
"""

import logging
from typing import Dict, Tuple

from dotenv import load_dotenv

from config import get_settings
from db_engine import init_db
from exceptions import StorageError
from models import TOLERANCE
from repositories import LedgerRepository

logger = logging.getLogger(__name__)


def reconcile_all() -> Dict[str, Tuple[float, float]]:
    """
    Reconcile every provisioned ledger.

    Returns:
        Mapping of username to (cached balance before, recomputed balance)
        for ledgers whose cache had drifted
    """
    drifted = {}
    for username in LedgerRepository.list_usernames():
        cached = LedgerRepository.get_balance(username)
        computed = LedgerRepository.compute_balance(username)
        if abs(cached - computed) <= TOLERANCE:
            continue
        old, new = LedgerRepository.reconcile_balance(username)
        logger.warning(f"Balance drift for {username}: cached {old:.2f}, log {new:.2f}")
        drifted[username] = (old, new)
    return drifted


def run_reconciliation() -> int:
    """Run reconciliation and print a report. Returns a process exit code."""
    print("=" * 60)
    print("PaperLedger Balance Reconciliation")
    print("=" * 60)

    try:
        init_db()
        drifted = reconcile_all()
    except StorageError as e:
        print(f"Error during reconciliation: {e}")
        return 1

    if drifted:
        for username, (old, new) in drifted.items():
            print(f"✓ Repaired {username}: {old:.2f} -> {new:.2f}")
    else:
        print("✓ All balances match their transaction logs.")

    print("=" * 60)
    print("Reconciliation complete!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    load_dotenv()
    logging.basicConfig(
        level=get_settings().log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    raise SystemExit(run_reconciliation())

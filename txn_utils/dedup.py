# Purpose: duplicate detection helpers for merging transaction collections.

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from txn_core.models import Transaction

DedupKey = Tuple[str, str, Optional[date], Decimal, Decimal]


def dedup_key(txn: Transaction) -> DedupKey:
    """(bank, account, post_date, amount, balance): equal keys mean duplicates."""
    return (txn.bank, txn.account, txn.post_date, txn.amount, txn.balance)


def populated_count(txn: Transaction) -> int:
    """
    Number of optional fields carrying information.
    name, notes and tags each count once when non-empty.
    """
    return sum(1 for v in (txn.name, txn.notes, txn.tags) if v)

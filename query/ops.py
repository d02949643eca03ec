"""
Sort, merge, group and count helpers over transaction collections.
All of them return new containers and leave their inputs untouched.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import fields
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Union

from txn_core.errors import FilterArgumentError
from txn_core.models import Transaction
from txn_utils.dates import BUCKETS, bucket_start
from txn_utils.dedup import DedupKey, dedup_key, populated_count

Key = Union[str, Callable[[Transaction], Any]]

FIELD_NAMES = frozenset(f.name for f in fields(Transaction))


def _accessor(key: Key, arg: str = "key") -> Callable[[Transaction], Any]:
    if callable(key):
        return key
    if isinstance(key, str) and key in FIELD_NAMES:
        return lambda t: getattr(t, key)
    raise FilterArgumentError(arg, key, "transaction field name or callable")


def tsort(
    transactions: Iterable[Transaction], key: Key = "post_date", reverse: bool = False
) -> List[Transaction]:
    """Stable sort by a field name or accessor. Missing (None) values go last."""
    get = _accessor(key)

    def sort_key(t: Transaction):
        v = get(t)
        # (is_missing, value): None never gets compared against a real value
        return (v is None) != reverse, v

    return sorted(transactions, key=sort_key, reverse=reverse)


def tmerge(a: Iterable[Transaction], b: Iterable[Transaction]) -> List[Transaction]:
    """
    Merge two collections, dropping duplicates by (bank, account, post_date,
    amount, balance). Of two duplicates the one with strictly more populated
    optional fields survives; otherwise the earlier one (``a`` before ``b``).
    Output follows first-seen order of the keys.
    """
    kept: Dict[DedupKey, Transaction] = {}
    for txn in [*a, *b]:
        k = dedup_key(txn)
        current = kept.get(k)
        if current is None or populated_count(txn) > populated_count(current):
            kept[k] = txn
    return list(kept.values())


def tgroup(
    transactions: Iterable[Transaction], bucket: str = "month", field: str = "post_date"
) -> Dict[date, List[Transaction]]:
    """
    Bucket transactions by calendar period. Keys are period start dates
    (weeks start on Monday) in ascending order; empty periods are omitted.
    Records without a date are skipped.
    """
    if bucket not in BUCKETS:
        raise FilterArgumentError("bucket", bucket, "one of " + ", ".join(BUCKETS))
    if field not in ("post_date", "transaction_date"):
        raise FilterArgumentError("field", field, "post_date or transaction_date")

    groups: Dict[date, List[Transaction]] = defaultdict(list)
    for txn in transactions:
        d = getattr(txn, field)
        if d is not None:
            groups[bucket_start(d, bucket)].append(txn)
    return {k: groups[k] for k in sorted(groups)}


def tcounts(transactions: Iterable[Transaction], key: Key) -> Dict[Any, int]:
    """
    Tally values of a field (or accessor) in first-seen order.
    Set values such as ``tags`` count each member once per record.
    """
    get = _accessor(key)
    out: Dict[Any, int] = {}
    for txn in transactions:
        v = get(txn)
        values = sorted(v) if isinstance(v, (set, frozenset)) else [v]
        for item in values:
            out[item] = out.get(item, 0) + 1
    return out

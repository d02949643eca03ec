"""
Query engine: ``tfilter`` keeps the transactions that satisfy every criterion.

Each keyword argument accepts several shapes. They are resolved once, at call
entry, into one of the criterion variants below; matching then never inspects
argument types again.

    bank, account            str (case-insensitive equality) | callable
    name, description, notes str (case-insensitive substring) | callable
    tags                     str (must contain) | list/set of str (any of) | callable
    amount                   "deposit"/"d"/"+" | "withdrawal"/"w"/"-"
                             | (lo, hi) inclusive signed range | callable
    date                     int N (last N days before the newest post_date)
                             | "YYYY" / "YYYY-MM" / "YYYY-MM-DD"
                             | (start, end) inclusive range of such strings
                             | callable

Callables receive the field value (the tag set for ``tags``, ``post_date``
for ``date``) and return a truthy/falsy result.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, FrozenSet, Iterable, List, Optional

from txn_core.errors import FilterArgumentError
from txn_core.models import Transaction, to_decimal
from txn_utils.dates import Period, parse_period

DEPOSIT_WORDS = frozenset({"deposit", "d", "+"})
WITHDRAWAL_WORDS = frozenset({"withdrawal", "w", "-"})

TEXT_EXACT_FIELDS = ("bank", "account")
TEXT_CONTAINS_FIELDS = ("name", "description", "notes")


def field_value(txn: Transaction, field: str) -> Any:
    if field == "date":
        return txn.post_date
    return getattr(txn, field)


# ---------------- Criterion variants ----------------


@dataclass(frozen=True)
class Criterion:
    field: str

    def test(self, txn: Transaction) -> bool:  # pragma: no cover - abstract
        raise NotImplementedError


@dataclass(frozen=True)
class Exact(Criterion):
    value: str

    def test(self, txn: Transaction) -> bool:
        return (field_value(txn, self.field) or "").lower() == self.value


@dataclass(frozen=True)
class Contains(Criterion):
    value: str

    def test(self, txn: Transaction) -> bool:
        return self.value in (field_value(txn, self.field) or "").lower()


@dataclass(frozen=True)
class HasTag(Criterion):
    tag: str

    def test(self, txn: Transaction) -> bool:
        return self.tag in txn.tags


@dataclass(frozen=True)
class AnyTag(Criterion):
    tags: FrozenSet[str]

    def test(self, txn: Transaction) -> bool:
        return not self.tags.isdisjoint(txn.tags)


@dataclass(frozen=True)
class SignTest(Criterion):
    positive: bool

    def test(self, txn: Transaction) -> bool:
        if self.positive:
            return txn.amount > 0
        return txn.amount < 0


@dataclass(frozen=True)
class InRange(Criterion):
    lo: Any
    hi: Any

    def test(self, txn: Transaction) -> bool:
        v = field_value(txn, self.field)
        return v is not None and self.lo <= v <= self.hi


@dataclass(frozen=True)
class DateBucket(Criterion):
    period: Period

    def test(self, txn: Transaction) -> bool:
        return field_value(txn, self.field) in self.period


@dataclass(frozen=True)
class Predicate(Criterion):
    fn: Callable[[Any], Any]

    def test(self, txn: Transaction) -> bool:
        v = field_value(txn, self.field)
        if self.field == "tags":
            v = frozenset(v)
        return bool(self.fn(v))


# ---------------- Argument resolution ----------------


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float, Decimal)) and not isinstance(v, bool)


def _resolve_text(field: str, value: Any) -> Criterion:
    if callable(value):
        return Predicate(field, value)
    if isinstance(value, str):
        if field in TEXT_EXACT_FIELDS:
            return Exact(field, value.lower())
        return Contains(field, value.lower())
    kind = "exact" if field in TEXT_EXACT_FIELDS else "substring"
    raise FilterArgumentError(field, value, f"{kind} string or callable")


def _resolve_tags(value: Any) -> Criterion:
    if callable(value):
        return Predicate("tags", value)
    if isinstance(value, str):
        return HasTag("tags", value)
    if isinstance(value, (list, tuple, set, frozenset)):
        if not value or not all(isinstance(t, str) for t in value):
            raise FilterArgumentError("tags", value, "non-empty collection of strings")
        return AnyTag("tags", frozenset(value))
    raise FilterArgumentError("tags", value, "tag string, collection of tags or callable")


def _resolve_amount(value: Any) -> Criterion:
    if callable(value):
        return Predicate("amount", value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in DEPOSIT_WORDS:
            return SignTest("amount", True)
        if word in WITHDRAWAL_WORDS:
            return SignTest("amount", False)
        raise FilterArgumentError(
            "amount", value, "one of deposit, withdrawal, d, w, +, -"
        )
    if isinstance(value, (list, tuple)) and len(value) == 2 and all(map(_is_number, value)):
        lo, hi = (to_decimal(v) for v in value)
        if not (lo.is_finite() and hi.is_finite()):
            raise FilterArgumentError("amount", value, "finite (lo, hi) bounds")
        if lo > hi:
            raise FilterArgumentError("amount", value, "range with lo <= hi")
        return InRange("amount", lo, hi)
    raise FilterArgumentError("amount", value, "keyword, (lo, hi) numeric range or callable")


def _period(value: Any) -> Optional[Period]:
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return Period("day", value, value)
    return parse_period(value)


def _resolve_date(value: Any, anchor: Optional[date]) -> Criterion:
    if callable(value):
        return Predicate("date", value)
    if isinstance(value, int) and not isinstance(value, bool):
        if value < 0:
            raise FilterArgumentError("date", value, "non-negative number of days")
        if anchor is None:
            # empty collection: nothing can match, any start will do
            return InRange("date", date.max, date.max)
        days = min(value, (anchor - date.min).days)
        return InRange("date", anchor - timedelta(days=days), anchor)
    if isinstance(value, str):
        period = parse_period(value)
        if period is None:
            raise FilterArgumentError("date", value, "YYYY, YYYY-MM or YYYY-MM-DD")
        return DateBucket("date", period)
    if isinstance(value, (list, tuple)) and len(value) == 2:
        start, end = _period(value[0]), _period(value[1])
        if start is None or end is None:
            raise FilterArgumentError("date", value, "(start, end) pair of date strings")
        if start.start > end.end:
            raise FilterArgumentError("date", value, "range with start <= end")
        return InRange("date", start.start, end.end)
    raise FilterArgumentError(
        "date", value, "days as int, date string, (start, end) pair or callable"
    )


def resolve_criteria(
    txns: List[Transaction],
    *,
    bank: Any = None,
    account: Any = None,
    tags: Any = None,
    name: Any = None,
    description: Any = None,
    notes: Any = None,
    amount: Any = None,
    date: Any = None,
) -> List[Criterion]:
    """Turn filter keyword arguments into criterion variants. Raises FilterArgumentError."""
    out: List[Criterion] = []
    for field, value in (
        ("bank", bank),
        ("account", account),
        ("name", name),
        ("description", description),
        ("notes", notes),
    ):
        if value is not None:
            out.append(_resolve_text(field, value))
    if tags is not None:
        out.append(_resolve_tags(tags))
    if amount is not None:
        out.append(_resolve_amount(amount))
    if date is not None:
        dates = [t.post_date for t in txns if t.post_date is not None]
        out.append(_resolve_date(date, max(dates) if dates else None))
    return out


def tfilter(
    transactions: Iterable[Transaction], negate: bool = False, **criteria: Any
) -> List[Transaction]:
    """
    Return the transactions satisfying ALL supplied criteria, in input order.

    With ``negate=True`` the whole conjunction is inverted: the result is the
    transactions failing at least one criterion. The input is not modified.
    """
    txns = list(transactions)
    unknown = set(criteria) - {
        "bank", "account", "tags", "name", "description", "notes", "amount", "date"
    }
    if unknown:
        field = sorted(unknown)[0]
        raise FilterArgumentError(field, criteria[field], "a known transaction field")

    checks = resolve_criteria(txns, **criteria)
    return [t for t in txns if all(c.test(t) for c in checks) != negate]

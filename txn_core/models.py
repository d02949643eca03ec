from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, FrozenSet, Mapping, Optional, Set, Tuple

from txn_utils.dates import to_date

# Keys of the interchange mapping shared with the external parser and
# downstream consumers.
FIELDS = (
    "bank",
    "account",
    "post_date",
    "transaction_date",
    "description",
    "name",
    "amount",
    "balance",
    "notes",
    "tags",
)


def to_decimal(raw: Any) -> Decimal:
    """Numbers and numeric strings -> Decimal (floats go through str())."""
    if isinstance(raw, Decimal):
        return raw
    if raw is None or isinstance(raw, bool):
        raise ValueError(f"not an amount: {raw!r}")
    try:
        return Decimal(str(raw).replace(",", "").strip())
    except InvalidOperation as exc:
        raise ValueError(f"not an amount: {raw!r}") from exc


@dataclass
class Transaction:
    bank: str
    account: str
    post_date: Optional[date]
    transaction_date: Optional[date] = None
    description: str = ""
    name: Optional[str] = None  # filled in by the Categorizer
    amount: Decimal = Decimal("0")  # negative = withdrawal, positive = deposit
    balance: Decimal = Decimal("0")
    notes: Optional[str] = None
    tags: Set[str] = field(default_factory=set)

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "Transaction":
        """Build a record from the interchange mapping (ISO dates, numeric strings ok)."""
        tags = row.get("tags") or ()
        if isinstance(tags, str):
            tags = [tags]
        if not isinstance(tags, (list, tuple, set, frozenset)) or not all(
            isinstance(t, str) for t in tags
        ):
            raise ValueError(f"tags must be a string or a list of strings: {tags!r}")
        post_date = to_date(row.get("post_date"))
        return cls(
            bank=str(row.get("bank") or ""),
            account=str(row.get("account") or ""),
            post_date=post_date,
            transaction_date=to_date(row.get("transaction_date")) or post_date,
            description=str(row.get("description") or ""),
            name=row.get("name") or None,
            amount=to_decimal(row.get("amount", 0)),
            balance=to_decimal(row.get("balance", 0)),
            notes=row.get("notes") or None,
            tags=set(tags),
        )

    def to_mapping(self) -> Dict[str, Any]:
        """JSON-friendly interchange mapping."""
        return {
            "bank": self.bank,
            "account": self.account,
            "post_date": self.post_date.isoformat() if self.post_date else None,
            "transaction_date": (
                self.transaction_date.isoformat() if self.transaction_date else None
            ),
            "description": self.description,
            "name": self.name,
            "amount": str(self.amount),
            "balance": str(self.balance),
            "notes": self.notes,
            "tags": sorted(self.tags),
        }


@dataclass(frozen=True)
class Rule:
    """A single compiled taxonomy rule. ``tags`` already includes file-level tags."""

    name: str
    pattern: re.Pattern
    tags: FrozenSet[str] = frozenset()
    source: str = ""
    index: int = 0

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclass(frozen=True)
class TaxonomyFile:
    path: str
    tags: FrozenSet[str]
    data: Tuple[Rule, ...]

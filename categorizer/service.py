"""
Categorizer service: names and tags transactions using a loaded RuleStore.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from categorizer.rules import RuleStore, load
from txn_core.errors import ConfigError
from txn_core.models import Transaction, to_decimal

log = logging.getLogger(__name__)

MICRO_TAG = "micro"
MACRO_TAG = "macro"
DEFAULT_MICRO_LIMIT = Decimal("1.00")
DEFAULT_MACRO_LIMIT = Decimal("1000.00")


class Categorizer:
    """Rule-based categorizer. The rule store is loaded once and never changes."""

    def __init__(
        self,
        taxonomy_dir: Union[str, Path, None] = None,
        *,
        store: Optional[RuleStore] = None,
        micro_limit: Decimal = DEFAULT_MICRO_LIMIT,
        macro_limit: Decimal = DEFAULT_MACRO_LIMIT,
    ):
        if store is None:
            if taxonomy_dir is None:
                raise TypeError("Categorizer needs a taxonomy directory or a RuleStore")
            store = load(taxonomy_dir)
        self._store = store
        self.micro_limit = to_decimal(micro_limit)
        self.macro_limit = to_decimal(macro_limit)

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Categorizer":
        """Build from the mapping returned by ``config.loader.load_config``."""
        thresholds = cfg.get("thresholds", {})
        try:
            micro_limit = to_decimal(thresholds.get("micro", DEFAULT_MICRO_LIMIT))
            macro_limit = to_decimal(thresholds.get("macro", DEFAULT_MACRO_LIMIT))
        except ValueError as exc:
            raise ConfigError(f"bad [thresholds] value: {exc}", "config.toml") from exc
        return cls(cfg["taxonomy"]["dir"], micro_limit=micro_limit, macro_limit=macro_limit)

    @property
    def store(self) -> RuleStore:
        return self._store

    @property
    def rule_count(self) -> int:
        return len(self._store)

    def categorize(self, description: Optional[str]) -> Tuple[str, Set[str]]:
        """
        Return (name, tags) of the first rule matching the description.
        Unmatched descriptions keep their own text as name and get no tags.
        """
        text = description or ""
        rule = self._store.first_match(text.lower())
        if rule is None:
            return text, set()
        return rule.name, set(rule.tags)

    def categorize_transactions(
        self, transactions: Iterable[Transaction], macro: bool = True, micro: bool = True
    ) -> List[Transaction]:
        """
        Annotate records IN PLACE: set ``name``, add rule tags (existing tags are
        kept) and the micro/macro threshold tags. Returns the records.
        """
        txns = transactions if isinstance(transactions, list) else list(transactions)
        tagged = n_micro = n_macro = 0

        for txn in txns:
            name, tags = self.categorize(txn.description)
            if tags:
                tagged += 1
            txn.name = name
            txn.tags |= tags

            size = abs(txn.amount)
            if micro and size <= self.micro_limit:
                txn.tags.add(MICRO_TAG)
                n_micro += 1
            if macro and size >= self.macro_limit:
                txn.tags.add(MACRO_TAG)
                n_macro += 1

        log.debug(
            "Categorized %d transactions (%d rule-tagged, %d micro, %d macro)",
            len(txns),
            tagged,
            n_micro,
            n_macro,
        )
        return txns

"""
Rule store for transaction categorization.

A taxonomy directory holds one or more YAML files:

    tags: [food]
    data:
      - name: "Jet's Pizza"
        match: "jet'?s pizza"
        tags: [delivery, fast-food]

Features:
- Files evaluated in lexicographic path order, rules in declaration order
- Patterns compiled once, case-insensitive, matched anywhere in the text
- File-level tags added to every rule in the file
- First matching rule wins
- Malformed files fail the whole load (ConfigError names file and rule)
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Tuple, Union

import yaml

from txn_core.errors import ConfigError
from txn_core.models import Rule, TaxonomyFile

log = logging.getLogger(__name__)

TAXONOMY_EXTS = (".yaml", ".yml")


@dataclass(frozen=True)
class RuleStore:
    """Ordered, immutable set of compiled rules."""

    rules: Tuple[Rule, ...] = ()
    files: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def first_match(self, text: str) -> Optional[Rule]:
        """Return the earliest rule whose pattern occurs anywhere in ``text``."""
        for rule in self.rules:
            if rule.matches(text):
                return rule
        return None

    def all_tags(self) -> FrozenSet[str]:
        """Union of every rule's effective tag set."""
        out: set = set()
        for rule in self.rules:
            out |= rule.tags
        return frozenset(out)


def _string_list(value: Any, what: str, path: str, index: Optional[int]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ConfigError(f"{what} must be a list of strings", path, index)
    for v in value:
        if not isinstance(v, str):
            raise ConfigError(f"{what} must be a list of strings, got {v!r}", path, index)
    return list(value)


def parse_rule(r: Any, path: str, index: int, file_tags: FrozenSet[str]) -> Rule:
    """Validate and compile one entry of a taxonomy file's ``data`` list."""
    if not isinstance(r, dict):
        raise ConfigError("rule must be a mapping", path, index)

    name = r.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ConfigError("rule needs a non-empty 'name'", path, index)

    match = r.get("match")
    if not isinstance(match, str) or not match:
        raise ConfigError(f"rule {name!r} needs a 'match' pattern", path, index)
    try:
        pattern = re.compile(match, re.IGNORECASE)
    except re.error as exc:
        raise ConfigError(f"bad pattern {match!r}: {exc}", path, index) from exc

    tags = _string_list(r.get("tags"), "rule tags", path, index)
    return Rule(
        name=name,
        pattern=pattern,
        tags=file_tags | frozenset(tags),
        source=path,
        index=index,
    )


def parse_taxonomy(doc: Any, source: str = "<memory>") -> TaxonomyFile:
    """Validate one parsed taxonomy document and compile its rules."""
    if not isinstance(doc, dict):
        raise ConfigError("taxonomy file must be a mapping", source)

    data = doc.get("data")
    if not isinstance(data, list):
        raise ConfigError("taxonomy file needs a 'data' list", source)

    file_tags = frozenset(_string_list(doc.get("tags"), "file tags", source, None))
    rules = tuple(parse_rule(r, source, i, file_tags) for i, r in enumerate(data))
    return TaxonomyFile(path=source, tags=file_tags, data=rules)


def read_taxonomy_file(path: Path) -> TaxonomyFile:
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML: {exc}", str(path)) from exc
    except OSError as exc:
        raise ConfigError(f"cannot read file: {exc}", str(path)) from exc
    return parse_taxonomy(doc, str(path))


def discover_taxonomy_files(directory: Path) -> List[Path]:
    """Taxonomy files directly under ``directory``, sorted by path."""
    return sorted(
        p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in TAXONOMY_EXTS
    )


def load(directory: Union[str, Path]) -> RuleStore:
    """
    Load every taxonomy file in ``directory`` into one RuleStore.
    Any malformed file aborts the load with ConfigError.
    """
    d = Path(directory)
    if not d.is_dir():
        raise ConfigError("taxonomy directory not found", str(d))

    files = discover_taxonomy_files(d)
    if not files:
        log.warning("No taxonomy files in %s; every description stays unmatched.", d)

    rules: List[Rule] = []
    for p in files:
        tf = read_taxonomy_file(p)
        log.debug("Loaded %d rules from %s", len(tf.data), p)
        rules.extend(tf.data)

    log.info("Loaded %d rules from %d taxonomy files in %s", len(rules), len(files), d)
    return RuleStore(rules=tuple(rules), files=tuple(str(p) for p in files))


def compile_rules(docs: List[Dict[str, Any]]) -> RuleStore:
    """Build a RuleStore from in-memory taxonomy documents, in the given order."""
    rules: List[Rule] = []
    for i, doc in enumerate(docs):
        rules.extend(parse_taxonomy(doc, f"<memory:{i}>").data)
    return RuleStore(rules=tuple(rules))

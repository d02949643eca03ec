"""Exception hierarchy for the transaction tagger.

- ``ConfigError``: a taxonomy file is malformed or a pattern does not compile.
  Raised while the rule store is loaded; fatal for Categorizer construction.
- ``FilterArgumentError``: a query argument has a shape the query helpers do
  not understand. Raised at call time, before any record is inspected.
"""
from __future__ import annotations

from typing import Optional


class TaggerError(Exception):
    """Base class for all tagger errors."""


class ConfigError(TaggerError):
    """Raised when a taxonomy directory cannot be turned into rules.

    Attributes:
        path: file that failed to load (or the directory itself)
        index: zero-based position of the offending rule in ``data``, if any
    """

    def __init__(self, message: str, path: Optional[str] = None, index: Optional[int] = None):
        self.path = path
        self.index = index
        where = []
        if path is not None:
            where.append(str(path))
        if index is not None:
            where.append(f"rule #{index}")
        prefix = ": ".join(where)
        super().__init__(f"{prefix}: {message}" if prefix else message)


class FilterArgumentError(TaggerError, ValueError):
    """Raised when a filter/sort/group/count argument has an unsupported shape."""

    def __init__(self, field: str, value: object, expected: str):
        self.field = field
        self.value = value
        super().__init__(
            f"unsupported value for {field!r}: {value!r} (expected {expected})"
        )

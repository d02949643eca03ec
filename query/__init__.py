# query/__init__.py
"""
Query layer for transaction collections.

Provides the filter DSL plus sort, merge, group and count helpers. Every
function returns a new container and leaves its input untouched.
"""

from .filters import (
    tfilter,
    resolve_criteria,
    Criterion,
    Exact,
    Contains,
    HasTag,
    AnyTag,
    SignTest,
    InRange,
    DateBucket,
    Predicate,
)

from .ops import (
    tsort,
    tmerge,
    tgroup,
    tcounts,
)

__all__ = [
    # Filter DSL
    "tfilter",
    "resolve_criteria",
    # Criterion variants
    "Criterion",
    "Exact",
    "Contains",
    "HasTag",
    "AnyTag",
    "SignTest",
    "InRange",
    "DateBucket",
    "Predicate",
    # Collection helpers
    "tsort",
    "tmerge",
    "tgroup",
    "tcounts",
]

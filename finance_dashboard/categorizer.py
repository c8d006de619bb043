"""Transaction categorization logic.

Keyword-based matcher. Categories are checked in declaration order and
keywords within a category in declaration order; the first keyword that
occurs in the lower-cased description decides the category.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence

from .config import DEFAULT_CATEGORY, DEFAULT_RULES
from .data_loader import Transaction


def categorize(
    description: Optional[str],
    rules: Optional[Mapping[str, Sequence[str]]] = None,
    default_category: str = DEFAULT_CATEGORY,
) -> str:
    """Return the category label for a single description.

    - rules: {"Category": ["keyword", ...]}, insertion order matters
    Pure and total: unmatched or empty descriptions get ``default_category``.
    """

    desc = (description or "").lower()
    for category, keywords in (DEFAULT_RULES if rules is None else rules).items():
        for keyword in keywords or ():
            if keyword in desc:
                return category
    return default_category


def categorize_transactions(
    txns: Iterable[Transaction],
    rules: Optional[Mapping[str, Sequence[str]]] = None,
    default_category: str = DEFAULT_CATEGORY,
) -> None:
    """In-place categorization of transactions that have no category yet."""

    for t in txns:
        if t.category:
            continue
        t.category = categorize(t.description, rules, default_category)


def categorize_many(
    descriptions: Iterable[Optional[str]],
    rules: Optional[Mapping[str, Sequence[str]]] = None,
) -> List[str]:
    return [categorize(d, rules) for d in descriptions]

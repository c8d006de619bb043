"""Offline analysis helpers.

Functions that surface gaps in the categorization rules: descriptions
that fall through to the default category, and merchant names extracted
from the structured parts of Dutch bank descriptions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .categorizer import categorize
from .config import DEFAULT_CATEGORY
from .data_loader import Transaction

_CARD_PAYMENT = re.compile(r"(?:BEA|GEA), (?:Google Pay|Apple Pay|Betaalpas)\s+(.+?),PAS")
_SEPA_NAME = re.compile(r"NAME/([^/]+)")
_INCASSO_NAME = re.compile(r"Naam: ([^/\s]+)")

_MIN_MERCHANT_LENGTH = 4
_DESCRIPTION_PREFIX = 80


@dataclass
class DescriptionCount:
    description: str
    amount: float
    count: int = 1


@dataclass
class MerchantCount:
    name: str
    count: int = 1


def extract_merchant(description: str) -> Optional[str]:
    """Pull the merchant name out of a card, iDEAL or SEPA description.

    Returns None for descriptions without a recognizable pattern.
    """

    match = None
    if "BEA," in description or "GEA," in description:
        match = _CARD_PAYMENT.search(description)
    elif "iDEAL" in description:
        match = _SEPA_NAME.search(description)
    elif "SEPA Incasso" in description:
        match = _INCASSO_NAME.search(description)
    elif "SEPA Overboeking" in description or "/TRTP/SEPA OVERBOEKING/" in description:
        match = _SEPA_NAME.search(description)
    if not match:
        return None
    return match.group(1).strip() or None


def unique_merchants(txns: Iterable[Transaction]) -> List[MerchantCount]:
    """Merchants keyed case-insensitively, sorted alphabetically."""
    merchants: Dict[str, MerchantCount] = {}
    for t in txns:
        name = extract_merchant(t.description)
        if not name or len(name) < _MIN_MERCHANT_LENGTH:
            continue
        key = name.lower()
        if key in merchants:
            merchants[key].count += 1
        else:
            merchants[key] = MerchantCount(name=name)
    return sorted(merchants.values(), key=lambda m: m.name.casefold())


def uncategorized_descriptions(
    txns: Iterable[Transaction],
    rules: Optional[Mapping[str, Sequence[str]]] = None,
    default_category: str = DEFAULT_CATEGORY,
) -> List[DescriptionCount]:
    """Group descriptions that land in the default category, most frequent first.

    Descriptions are truncated to their first 80 characters and grouped
    case-insensitively; the first occurrence supplies the display text and
    amount.
    """

    items: Dict[str, DescriptionCount] = {}
    for t in txns:
        if categorize(t.description, rules, default_category) != default_category:
            continue
        clean = t.description[:_DESCRIPTION_PREFIX].strip()
        key = clean.lower()
        if key in items:
            items[key].count += 1
        else:
            items[key] = DescriptionCount(description=clean, amount=t.amount)
    # sorted() is stable, so ties keep first-seen order
    return sorted(items.values(), key=lambda item: item.count, reverse=True)


def category_totals(txns: Iterable[Transaction]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for t in txns:
        cat = t.category or DEFAULT_CATEGORY
        totals[cat] = totals.get(cat, 0.0) + t.amount
    return {k: round(v, 2) for k, v in sorted(totals.items(), key=lambda kv: kv[1])}

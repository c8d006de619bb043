"""Normalization of raw aggregator transactions.

Providers fill different subsets of the aggregator's transaction schema,
so every logical field is resolved through an ordered tuple of candidate
accessors: the first present, non-empty value wins.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .errors import InvalidTransactionError

SOURCE = "aggregator"
KEY_SEPARATOR = "|"

Accessor = Callable[[Mapping[str, Any]], Any]


def path(dotted: str) -> Accessor:
    """Accessor for a (possibly nested) field, e.g. ``transactionAmount.amount``."""
    parts = dotted.split(".")

    def get(record: Mapping[str, Any]) -> Any:
        value: Any = record
        for part in parts:
            if not isinstance(value, Mapping):
                return None
            value = value.get(part)
        return value

    get.__name__ = dotted
    return get


def joined(dotted: str, sep: str = " ") -> Accessor:
    inner = path(dotted)

    def get(record: Mapping[str, Any]) -> Any:
        value = inner(record)
        if isinstance(value, (list, tuple)):
            return sep.join(str(v) for v in value if v)
        return None

    get.__name__ = f"join({dotted})"
    return get


IDENTIFIER: Tuple[Accessor, ...] = (
    path("transactionId"),
    path("internalTransactionId"),
    path("endToEndId"),
)
AMOUNT: Tuple[Accessor, ...] = (path("transactionAmount.amount"), path("amount"))
CURRENCY: Tuple[Accessor, ...] = (path("transactionAmount.currency"), path("currency"))
DATE: Tuple[Accessor, ...] = (path("bookingDate"), path("valueDate"), path("date"))
DESCRIPTION: Tuple[Accessor, ...] = (
    path("remittanceInformationUnstructured"),
    joined("remittanceInformationUnstructuredArray"),
    path("creditorName"),
    path("debtorName"),
    path("description"),
)


def _present(value: Any) -> bool:
    return value is not None and value != "" and value != []


def resolve(record: Mapping[str, Any], candidates: Tuple[Accessor, ...], default: Any = None) -> Any:
    for accessor in candidates:
        value = accessor(record)
        if _present(value):
            return value
    return default


def canonical_amount(value: Any) -> Optional[str]:
    """Decimal string for ``value``, or None when it is not numeric.

    The string form of a decimal is preserved (``"-12.50"`` stays
    ``"-12.50"``) so keys stay stable across runs.
    """

    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return str(amount)


def transaction_key(txn: Mapping[str, Any]) -> str:
    """Composite dedup key ``identifier|amount|date``.

    Works for raw and normalized records alike, since normalized records
    keep the provider fields next to the normalized ones.
    """

    identifier = resolve(txn, IDENTIFIER, "")
    raw_amount = resolve(txn, AMOUNT, "")
    amount = canonical_amount(raw_amount)
    date = resolve(txn, DATE, "")
    return KEY_SEPARATOR.join(
        (str(identifier), amount if amount is not None else str(raw_amount), str(date))
    )


def normalize_transaction(raw: Mapping[str, Any], account_id: str) -> Dict[str, Any]:
    """Map a raw booked transaction to the snapshot shape.

    Provider fields are kept; normalized fields overwrite same-named ones.
    Raises InvalidTransactionError when the amount is missing or not numeric.
    """

    raw_amount = resolve(raw, AMOUNT)
    amount = canonical_amount(raw_amount)
    if amount is None:
        raise InvalidTransactionError(
            f"transaction {resolve(raw, IDENTIFIER, '?')} on {account_id} has a non-numeric amount: {raw_amount!r}"
        )

    normalized = dict(raw)
    normalized.update(
        {
            "source": SOURCE,
            "accountId": account_id,
            "amount": amount,
            "currency": resolve(raw, CURRENCY),
            "date": resolve(raw, DATE),
            "description": str(resolve(raw, DESCRIPTION, "")),
        }
    )
    return normalized

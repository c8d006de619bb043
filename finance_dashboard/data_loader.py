"""Data loading helpers for offline analysis.

Reads ABN AMRO tab-separated exports (``.TAB``) and normalizes them into a
common transaction schema with fields:
    date (datetime.date), description (str), amount (float), account (str|None)

Export columns: account, currency, transaction date, start balance,
end balance, interest date, amount, description. Rows with fewer than
eight columns are skipped.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from .logging_setup import get_logger

logger = get_logger(__name__)

_MIN_COLUMNS = 8
_ACCOUNT, _CURRENCY, _DATE, _AMOUNT, _DESCRIPTION = 0, 1, 2, 6, 7


@dataclass
class Transaction:
    date: Optional[dt.date]
    description: str
    amount: float  # negative = expense, positive = income
    account: Optional[str] = None
    currency: Optional[str] = None
    category: Optional[str] = None  # filled later by categorizer


def _parse_date(value: str) -> Optional[dt.date]:
    value = value.strip()
    for fmt in ("%Y%m%d", "%Y-%m-%d", "%d-%m-%Y"):
        try:
            return dt.datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def _to_float(value: str) -> float:
    # Dutch exports use a decimal comma, sometimes with dot thousands separators.
    v = value.strip()
    if "," in v:
        v = v.replace(".", "").replace(",", ".")
    try:
        return float(v)
    except ValueError as exc:
        raise ValueError(f"Invalid amount: {value}") from exc


def parse_tab_line(line: str) -> Optional[Transaction]:
    cols = line.rstrip("\r\n").split("\t")
    if len(cols) < _MIN_COLUMNS:
        return None
    return Transaction(
        date=_parse_date(cols[_DATE]),
        description=cols[_DESCRIPTION].strip(),
        amount=_to_float(cols[_AMOUNT]),
        account=cols[_ACCOUNT].strip() or None,
        currency=cols[_CURRENCY].strip() or None,
    )


def load_tab_file(path: str | Path) -> List[Transaction]:
    p = Path(path)
    txns: List[Transaction] = []
    with p.open("r", encoding="utf-8", errors="replace") as f:
        for lineno, line in enumerate(f, start=1):
            if not line.strip():
                continue
            try:
                txn = parse_tab_line(line)
            except ValueError as exc:
                logger.warning("%s:%d skipped: %s", p.name, lineno, exc)
                continue
            if txn is not None:
                txns.append(txn)
    return txns


def load_tab_files(paths: Iterable[str | Path]) -> List[Transaction]:
    all_txns: List[Transaction] = []
    for p in paths:
        all_txns.extend(load_tab_file(p))
    return all_txns

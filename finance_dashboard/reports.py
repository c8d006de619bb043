"""Reporting utilities.

Formats analysis results into human-readable text and JSON-serializable
dicts.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .analytics import DescriptionCount, MerchantCount


def format_uncategorized_report(
    items: Sequence[DescriptionCount],
    category: str,
    limit: int = 50,
) -> str:
    lines: List[str] = [f"=== Items in {category.upper()} category (sorted by frequency) ===", ""]
    for i, item in enumerate(items[:limit], start=1):
        lines.append(f"{i}. [{item.count}x] {item.description}")
    lines.append("")
    lines.append("")
    lines.append(f"Total unique {category} items: {len(items)}")
    lines.append(f"Showing top {min(limit, len(items))} most frequent")
    return "\n".join(lines)


def format_merchant_report(merchants: Sequence[MerchantCount]) -> str:
    lines: List[str] = ["=== Unique Merchants Found (alphabetical) ===", ""]
    for i, merchant in enumerate(merchants, start=1):
        lines.append(f"{i}. [{merchant.count}x] {merchant.name}")
    lines.append("")
    lines.append("")
    lines.append(f"Total unique merchants: {len(merchants)}")
    return "\n".join(lines)


def format_category_report(totals: Dict[str, float]) -> str:
    lines: List[str] = ["-- Totals by Category --"]
    for cat, amt in totals.items():
        lines.append(f"{cat:22} {amt:>12.2f}")
    return "\n".join(lines)


def to_json_ready(items: Sequence[Any]) -> List[Dict[str, Any]]:
    return [asdict(item) for item in items]


def save_json(data: Any, path: str | Path) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

"""JSON persistence of the merged transaction snapshot.

The snapshot is rewritten in full on every successful sync. Writes go to a
temporary file in the same directory which then replaces the target, so
readers never see a half-written file.
"""

from __future__ import annotations

import json
import os
import re
import stat
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import StorageError
from .logging_setup import get_logger

logger = get_logger(__name__)

SNAPSHOT_FILENAME = "synced_transactions.json"
_SAFE_NAMESPACE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class Snapshot:
    last_updated: Optional[str] = None
    transactions: List[Dict[str, Any]] = field(default_factory=list)
    discovered_accounts: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastUpdated": self.last_updated,
            "transactions": self.transactions,
            "discoveredAccounts": self.discovered_accounts,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> "Snapshot":
        if not isinstance(raw, dict):
            raise ValueError("snapshot root is not an object")
        transactions = raw.get("transactions") or []
        if not isinstance(transactions, list):
            raise ValueError("snapshot transactions is not a list")
        accounts = raw.get("discoveredAccounts") or []
        return cls(
            last_updated=raw.get("lastUpdated"),
            transactions=[t for t in transactions if isinstance(t, dict)],
            discovered_accounts=[str(a) for a in accounts] if isinstance(accounts, list) else [],
        )


class SnapshotStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @classmethod
    def in_directory(cls, data_dir: str | Path, namespace: Optional[str] = None) -> "SnapshotStore":
        """Store under ``data_dir``, or ``data_dir/accounts/<namespace>`` when given."""
        base = Path(data_dir)
        if namespace:
            safe = _SAFE_NAMESPACE.sub("_", namespace).strip("._") or "_"
            base = base / "accounts" / safe
        return cls(base / SNAPSHOT_FILENAME)

    def load(self) -> Snapshot:
        """Previous snapshot; a missing or unreadable file yields an empty one."""
        if not self.path.exists():
            return Snapshot()
        try:
            with self.path.open("r", encoding="utf-8") as f:
                return Snapshot.from_dict(json.load(f))
        except (OSError, ValueError) as exc:
            # json.JSONDecodeError is a ValueError
            logger.warning("ignoring unreadable snapshot %s: %s", self.path, exc)
            return Snapshot()

    def _file_mode(self) -> int:
        """Mode of the current file, else what a plain open() would create."""
        try:
            return stat.S_IMODE(self.path.stat().st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def save(self, snapshot: Snapshot) -> None:
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(snapshot.to_dict(), f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.chmod(tmp_name, self._file_mode())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"could not write snapshot {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

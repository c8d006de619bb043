"""Transaction sync: fetch from the aggregator, normalize, merge, persist.

One run loads the previous snapshot, resolves which accounts to read,
fetches booked transactions account by account, merges them into the
snapshot keyed by ``identifier|amount|date`` and writes the result back.
A failing account is logged and skipped; only missing credentials and a
failed snapshot write abort the run.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from .config import AggregatorSettings
from .errors import InvalidTransactionError, MissingCredentialsError
from .gocardless import GoCardlessClient
from .logging_setup import get_logger
from .normalize import normalize_transaction, transaction_key
from .snapshot import Snapshot, SnapshotStore

logger = get_logger(__name__)

BOOKED_ONLY = {"include": "booked"}


class BankDataClient(Protocol):
    def list_requisitions(self) -> List[Dict[str, Any]]: ...

    def get_account_transactions(
        self, account_id: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, List[Dict[str, Any]]]: ...

    def close(self) -> None: ...


ClientFactory = Callable[[str, str], BankDataClient]


@dataclass
class SyncResult:
    added: int
    total: int
    used_accounts: List[str] = field(default_factory=list)
    failed_accounts: List[str] = field(default_factory=list)
    file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        return {
            "added": data["added"],
            "total": data["total"],
            "usedAccounts": data["used_accounts"],
            "failedAccounts": data["failed_accounts"],
            "file": data["file"],
        }


def gocardless_factory(settings: AggregatorSettings) -> ClientFactory:
    def build(secret_id: str, secret_key: str) -> BankDataClient:
        return GoCardlessClient(
            secret_id,
            secret_key,
            base_url=settings.base_url,
            token_timeout=settings.token_timeout,
            request_timeout=settings.request_timeout,
        )

    return build


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def merge_transactions(
    previous: Iterable[Mapping[str, Any]],
    fetched: Iterable[Mapping[str, Any]],
) -> List[Dict[str, Any]]:
    """Merge fresh transactions over previous ones, one entry per dedup key.

    A fetched transaction is shallow-merged over the entry with the same key
    (its fields win); unknown keys are appended. Iteration order decides
    ties, so the last fetched transaction for a key wins.
    """

    by_key: Dict[str, Dict[str, Any]] = {}
    for txn in previous:
        by_key[transaction_key(txn)] = dict(txn)
    for txn in fetched:
        key = transaction_key(txn)
        merged = by_key.get(key, {})
        merged.update(txn)
        by_key[key] = merged
    return list(by_key.values())


def discover_accounts(client: BankDataClient) -> List[str]:
    """Union of account ids across all requisitions, first-seen order.

    Discovery failures degrade to an empty list.
    """

    try:
        requisitions = client.list_requisitions()
    except Exception as exc:  # noqa: BLE001
        logger.warning("account discovery failed, continuing without accounts: %s", exc)
        return []

    seen: Dict[str, None] = {}
    for requisition in requisitions or []:
        accounts = requisition.get("accounts") if isinstance(requisition, dict) else None
        if not isinstance(accounts, list):
            continue
        for account_id in accounts:
            if account_id:
                seen.setdefault(str(account_id), None)
    return list(seen)


class SyncEngine:
    def __init__(
        self,
        store: SnapshotStore,
        client_factory: ClientFactory,
        clock: Callable[[], dt.datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.client_factory = client_factory
        self.clock = clock

    def run(
        self,
        secret_id: Optional[str],
        secret_key: Optional[str],
        account_ids: Optional[Sequence[str]] = None,
    ) -> SyncResult:
        if not secret_id or not secret_key:
            raise MissingCredentialsError()

        previous = self.store.load()
        client = self.client_factory(secret_id, secret_key)
        try:
            accounts = [a for a in (account_ids or []) if a]
            discovered: List[str] = []
            if not accounts:
                discovered = discover_accounts(client)
                accounts = list(discovered)
            logger.info("syncing %d account(s)", len(accounts))

            fetched: List[Dict[str, Any]] = []
            failed: List[str] = []
            for account_id in accounts:
                try:
                    fetched.extend(self._fetch_account(client, account_id))
                except Exception as exc:  # noqa: BLE001
                    failed.append(account_id)
                    logger.error("sync of account %s failed: %s", account_id, exc)
        finally:
            client.close()

        merged = merge_transactions(previous.transactions, fetched)
        snapshot = Snapshot(
            last_updated=self.clock().isoformat(),
            transactions=merged,
            discovered_accounts=discovered,
        )
        self.store.save(snapshot)
        logger.info(
            "sync finished: %d fetched, %d total, %d failed account(s)",
            len(fetched),
            len(merged),
            len(failed),
        )
        return SyncResult(
            added=len(fetched),
            total=len(merged),
            used_accounts=accounts,
            failed_accounts=failed,
            file=str(self.store.path),
        )

    @staticmethod
    def _fetch_account(client: BankDataClient, account_id: str) -> List[Dict[str, Any]]:
        res = client.get_account_transactions(account_id, dict(BOOKED_ONLY))
        normalized: List[Dict[str, Any]] = []
        for raw in res.get("booked") or []:
            try:
                normalized.append(normalize_transaction(raw, account_id))
            except InvalidTransactionError as exc:
                logger.warning("skipping transaction: %s", exc)
        return normalized

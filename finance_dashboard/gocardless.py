"""Minimal GoCardless Bank Account Data client.

Docs: https://developer.gocardless.com/bank-account-data/overview

Every authenticated call needs a short-lived bearer token obtained by
exchanging the secret id/key pair at ``/token/new/``. Tokens are cached per
client instance until shortly before ``access_expires``.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from .config import DEFAULT_BASE_URL
from .errors import AggregatorError, AuthError, NotFoundError, RemoteError, RequestTimeoutError
from .logging_setup import get_logger

logger = get_logger(__name__)

# Refresh this many seconds before the advertised expiry.
_TOKEN_EXPIRY_MARGIN = 30.0


class GoCardlessClient:
    def __init__(
        self,
        secret_id: str,
        secret_key: str,
        base_url: str = DEFAULT_BASE_URL,
        token_timeout: float = 15.0,
        request_timeout: float = 20.0,
        http_client: Optional[httpx.Client] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.secret_id = secret_id
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.token_timeout = token_timeout
        self.request_timeout = request_timeout
        self._http = http_client or httpx.Client()
        self._owns_http = http_client is None
        self._clock = clock
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "GoCardlessClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- transport ---------------------------------------------------------

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    def _send(self, method: str, endpoint: str, timeout: float, **kwargs: Any) -> httpx.Response:
        try:
            return self._http.request(method, self._url(endpoint), timeout=timeout, **kwargs)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(f"{method} {endpoint} timed out after {timeout}s") from exc
        except httpx.TransportError as exc:
            raise AggregatorError(f"{method} {endpoint} failed: {exc}") from exc

    @staticmethod
    def _json(response: httpx.Response, endpoint: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(response.status_code, response.text, f"{endpoint} returned invalid JSON") from exc

    # -- auth --------------------------------------------------------------

    def authenticate(self) -> str:
        """Exchange the secret pair for an access token."""
        if self._token and self._clock() < self._token_expires_at:
            return self._token

        payload = {"secret_id": self.secret_id, "secret_key": self.secret_key}
        response = self._send("POST", "/token/new/", self.token_timeout, json=payload)
        if not response.is_success:
            raise AuthError(f"token exchange failed with HTTP {response.status_code}: {response.text[:200]}")
        try:
            data = response.json()
        except ValueError as exc:
            raise AuthError("token endpoint returned invalid JSON") from exc
        token = data.get("access") if isinstance(data, dict) else None
        if not token or not isinstance(token, str):
            raise AuthError("token endpoint response has no access token")

        expires_in = data.get("access_expires")
        if isinstance(expires_in, (int, float)) and expires_in > _TOKEN_EXPIRY_MARGIN:
            self._token = token
            self._token_expires_at = self._clock() + float(expires_in) - _TOKEN_EXPIRY_MARGIN
        else:
            self._token = None
            self._token_expires_at = 0.0
        logger.debug("obtained aggregator access token")
        return token

    def _get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        token = self.authenticate()
        response = self._send(
            "GET",
            endpoint,
            self.request_timeout,
            params=params or None,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
        )
        if response.status_code == 404:
            raise NotFoundError(response.text, f"{endpoint} not found")
        if not response.is_success:
            raise RemoteError(response.status_code, response.text)
        return self._json(response, endpoint)

    # -- resources ---------------------------------------------------------

    def list_requisitions(self) -> List[Dict[str, Any]]:
        """Linked bank connections; accepts paginated and bare-list bodies."""
        data = self._get("/requisitions/")
        if isinstance(data, dict) and isinstance(data.get("results"), list):
            return data["results"]
        if isinstance(data, list):
            return data
        return []

    def get_requisition(self, requisition_id: str) -> Dict[str, Any]:
        return self._get(f"/requisitions/{requisition_id}/")

    def list_accounts_for_requisition(self, requisition_id: str) -> List[str]:
        requisition = self.get_requisition(requisition_id)
        accounts = requisition.get("accounts") if isinstance(requisition, dict) else None
        return list(accounts) if isinstance(accounts, list) else []

    def get_account_transactions(
        self, account_id: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, List[Dict[str, Any]]]:
        """Booked and pending transactions for one linked account.

        The aggregator wraps both lists in a ``transactions`` envelope; some
        deployments return them at the top level, so both are accepted.
        """

        data = self._get(f"/accounts/{account_id}/transactions/", params=params)
        body = data.get("transactions") if isinstance(data, dict) and isinstance(data.get("transactions"), dict) else data
        if not isinstance(body, dict):
            body = {}
        return {
            "booked": list(body.get("booked") or []),
            "pending": list(body.get("pending") or []),
        }

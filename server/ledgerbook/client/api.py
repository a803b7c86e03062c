import logging
from typing import Any, Optional

import httpx

from ledgerbook.client.cache import ACCOUNT_OPTIONS, JOURNAL_ENTRIES, QueryCache, entries_key, entry_key
from ledgerbook.journal.errors import NotFoundError, StaleStateError, TransportError, ValidationError

logger = logging.getLogger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    detail = body.get("detail", body) if isinstance(body, dict) else body
    if isinstance(detail, list):
        return "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in detail)
    return str(detail)


class JournalApiClient:
    """Calls the journal entry API and keeps a query cache in step with mutations.

    Domain failures come back as ``ValidationError`` (400/422),
    ``NotFoundError`` (404) and ``StaleStateError`` (409); anything else,
    including connection problems, is a ``TransportError``.
    """

    def __init__(self, http: httpx.Client, cache: Optional[QueryCache] = None):
        self.http = http
        self.cache = cache if cache is not None else QueryCache()

    def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = self.http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise TransportError(f"Could not reach the server: {exc}") from exc

        if response.is_success:
            return response.json()

        detail = _error_detail(response)
        if response.status_code in (400, 422):
            raise ValidationError(detail)
        if response.status_code == 404:
            raise NotFoundError(detail)
        if response.status_code == 409:
            raise StaleStateError(detail)
        logger.warning("%s %s returned %s: %s", method, url, response.status_code, detail)
        raise TransportError(
            f"Server error ({response.status_code}): {detail}",
            status_code=response.status_code,
            detail=detail,
        )

    def _cached(self, key, method: str, url: str, **kwargs) -> Any:
        if key in self.cache:
            return self.cache.get(key)
        data = self._request(method, url, **kwargs)
        self.cache.set(key, data)
        return data

    def list_accounts(self) -> list[dict]:
        return self._cached((ACCOUNT_OPTIONS,), "GET", ACCOUNT_OPTIONS)

    def list_entries(self, **filters) -> list[dict]:
        params = {name: str(value) for name, value in filters.items() if value is not None}
        key = entries_key() + (("list",) + tuple(sorted(params.items())),)
        return self._cached(key, "GET", JOURNAL_ENTRIES, params=params)

    def get_entry(self, entry_id: int) -> dict:
        return self._cached(entry_key(entry_id), "GET", f"{JOURNAL_ENTRIES}/{entry_id}")

    def create_entry(self, payload: dict) -> dict:
        data = self._request("POST", JOURNAL_ENTRIES, json=payload)
        self.cache.invalidate_for("create", data["id"])
        return data

    def update_entry(self, entry_id: int, payload: dict) -> dict:
        data = self._request("PUT", f"{JOURNAL_ENTRIES}/{entry_id}", json=payload)
        self.cache.invalidate_for("update", entry_id)
        return data

    def post_entry(self, entry_id: int, actor: Optional[str] = None) -> dict:
        params = {"actor": actor} if actor else None
        data = self._request("POST", f"{JOURNAL_ENTRIES}/{entry_id}/post", params=params)
        self.cache.invalidate_for("post", entry_id)
        return data

    def force_to_draft(self, entry_id: int, reason: str, actor: Optional[str] = None) -> dict:
        data = self._request("POST", f"{JOURNAL_ENTRIES}/{entry_id}/set-draft", json={"reason": reason, "actor": actor})
        self.cache.invalidate_for("force_draft", entry_id)
        return data

    def delete_entry(self, entry_id: int, actor: Optional[str] = None) -> None:
        params = {"actor": actor} if actor else None
        self._request("DELETE", f"{JOURNAL_ENTRIES}/{entry_id}", params=params)
        self.cache.invalidate_for("delete", entry_id)

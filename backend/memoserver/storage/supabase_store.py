"""Memo store backed by a Supabase project.

Talks to the project's PostgREST endpoint (``<url>/rest/v1/memos``) with
httpx. Expects a table shaped like::

    create table memos (
        password text primary key,
        content text not null default '',
        duration_minutes integer not null default 30,
        expires_at timestamptz not null,
        last_updated timestamptz not null default now(),
        created_at timestamptz not null default now()
    );
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

import httpx

from memoserver.exceptions import DuplicateKeyError, StoreError
from memoserver.storage.base import Memo, MemoChanges, MemoStore

logger = logging.getLogger(__name__)

TABLE = "memos"
UNIQUE_VIOLATION = "23505"


class SupabaseMemoStore(MemoStore):
    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not url or not api_key:
            raise ValueError("Supabase url and api key are required")
        self.client = httpx.Client(
            base_url=url.rstrip("/") + "/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def _request(self, method: str, params: dict[str, str], **kwargs: Any) -> httpx.Response:
        try:
            r = self.client.request(method, f"/{TABLE}", params=params, **kwargs)
        except httpx.HTTPError as exc:
            raise StoreError(f"{method} /{TABLE} failed: {exc}") from exc
        if r.status_code == 409 and _error_code(r) == UNIQUE_VIOLATION:
            raise DuplicateKeyError("Key exists")
        if r.is_error:
            raise StoreError(f"{method} /{TABLE} returned {r.status_code}: {r.text[:200]}")
        return r

    def _rows(self, r: httpx.Response) -> list[dict[str, Any]]:
        try:
            data = r.json()
        except ValueError as exc:
            raise StoreError(f"Invalid JSON from /{TABLE}") from exc
        if not isinstance(data, list):
            raise StoreError(f"Unexpected payload from /{TABLE}")
        return data

    def _memo(self, rows: list[dict[str, Any]]) -> Memo | None:
        if not rows:
            return None
        try:
            return Memo.from_row(rows[0])
        except (KeyError, ValueError, TypeError) as exc:
            raise StoreError(f"Malformed row from /{TABLE}") from exc

    def get(self, key: str) -> Memo | None:
        r = self._request("GET", {"password": f"eq.{key}", "select": "*"})
        return self._memo(self._rows(r))

    def insert(self, memo: Memo) -> Memo:
        r = self._request(
            "POST",
            {"select": "*"},
            json=memo.to_row(),
            headers={"Prefer": "return=representation"},
        )
        return self._memo(self._rows(r)) or memo

    def update(self, key: str, changes: MemoChanges) -> Memo | None:
        r = self._request(
            "PATCH",
            {"password": f"eq.{key}", "select": "*"},
            json=changes.to_row(),
            headers={"Prefer": "return=representation"},
        )
        return self._memo(self._rows(r))

    def delete(self, key: str) -> bool:
        r = self._request(
            "DELETE",
            {"password": f"eq.{key}", "select": "password"},
            headers={"Prefer": "return=representation"},
        )
        return bool(self._rows(r))

    def delete_expired(self, before: datetime) -> int:
        r = self._request(
            "DELETE",
            {"expires_at": f"lt.{before.isoformat()}", "select": "password"},
            headers={"Prefer": "return=representation"},
        )
        return len(self._rows(r))

    def close(self) -> None:
        self.client.close()


def _error_code(r: httpx.Response) -> str | None:
    try:
        body = r.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("code")
    return None

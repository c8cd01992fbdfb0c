from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_dt(s: str) -> datetime:
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        # PostgREST returns "timestamp without time zone" columns naive
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def key_fingerprint(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class Memo:
    key: str
    content: str
    duration_minutes: int
    expires_at: datetime
    last_updated: datetime
    created_at: datetime

    def to_row(self) -> dict[str, Any]:
        return {
            "password": self.key,
            "content": self.content,
            "duration_minutes": self.duration_minutes,
            "expires_at": self.expires_at.isoformat(),
            "last_updated": self.last_updated.isoformat(),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, raw: dict[str, Any]) -> "Memo":
        last_updated = parse_dt(raw["last_updated"]) if raw.get("last_updated") else None
        created_at = parse_dt(raw["created_at"]) if raw.get("created_at") else None
        expires_at = parse_dt(raw["expires_at"])
        return cls(
            key=raw["password"],
            content=raw.get("content") or "",
            duration_minutes=int(raw["duration_minutes"]),
            expires_at=expires_at,
            last_updated=last_updated or created_at or expires_at,
            created_at=created_at or last_updated or expires_at,
        )


@dataclass(frozen=True)
class MemoChanges:
    content: str
    last_updated: datetime
    duration_minutes: Optional[int] = None
    expires_at: Optional[datetime] = None

    def to_row(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "content": self.content,
            "last_updated": self.last_updated.isoformat(),
        }
        if self.expires_at is not None:
            row["expires_at"] = self.expires_at.isoformat()
        if self.duration_minutes is not None:
            row["duration_minutes"] = self.duration_minutes
        return row


def is_expired(memo: Memo, now: datetime) -> bool:
    return now >= memo.expires_at


class MemoStore(ABC):
    """The `memos` collection, keyed by password.

    Implementations raise StoreError for any backend failure and
    DuplicateKeyError when inserting a key that already exists.
    """

    @abstractmethod
    def get(self, key: str) -> Memo | None:
        ...

    @abstractmethod
    def insert(self, memo: Memo) -> Memo:
        ...

    @abstractmethod
    def update(self, key: str, changes: MemoChanges) -> Memo | None:
        """Apply changes and return the stored memo, or None if the key is absent."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete the memo; returns whether a row was removed."""

    @abstractmethod
    def delete_expired(self, before: datetime) -> int:
        """Delete every memo whose expires_at is strictly before `before`."""

    def close(self) -> None:
        return None

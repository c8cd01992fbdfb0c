"""Memo lifecycle operations.

Every read path applies lazy expiration: a memo whose ``expires_at`` has
passed is deleted on access and reported as missing. The sweeper removes the
rest in bulk; both paths are idempotent deletes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from memoserver.exceptions import (
    DuplicateKeyError,
    InvalidKeyError,
    KeyTakenError,
    MemoExpiredError,
    MemoNotFoundError,
    StoreError,
)
from memoserver.storage import Memo, MemoChanges, MemoStore, is_expired, key_fingerprint, utc_now

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class KeyCheck:
    valid: bool
    message: Optional[str] = None


class MemoService:
    def __init__(
        self,
        store: MemoStore,
        default_duration_minutes: int = 30,
        min_key_length: int = 4,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.default_duration_minutes = default_duration_minutes
        self.min_key_length = min_key_length
        self.clock = clock

    def is_valid_key(self, key: Any) -> bool:
        return isinstance(key, str) and len(key) >= self.min_key_length

    def _require_valid_key(self, key: Any) -> str:
        if not self.is_valid_key(key):
            raise InvalidKeyError(f"Key must be at least {self.min_key_length} characters.")
        return key

    def _expire(self, memo: Memo) -> None:
        try:
            self.store.delete(memo.key)
        except StoreError:
            # the memo is already unreadable; the sweeper removes it later
            logger.exception("Error deleting expired memo %s", key_fingerprint(memo.key))
            return
        logger.info("Memo %s expired and was deleted on access", key_fingerprint(memo.key))

    def _get_live(self, key: str) -> Memo:
        memo = self.store.get(key)
        if memo is None:
            raise MemoNotFoundError("Memo not found.")
        if is_expired(memo, self.clock()):
            self._expire(memo)
            raise MemoExpiredError("Memo has expired.")
        return memo

    def check_key(self, key: Any) -> KeyCheck:
        if not self.is_valid_key(key):
            return KeyCheck(False, f"Key must be at least {self.min_key_length} characters.")
        try:
            self._get_live(key)
        except MemoNotFoundError:
            return KeyCheck(True)
        return KeyCheck(False, "This key is already taken.")

    def create_note(self, key: Any, content: Optional[str] = None, duration_minutes: Optional[int] = None) -> Memo:
        key = self._require_valid_key(key)
        duration = self.default_duration_minutes if duration_minutes is None else duration_minutes
        now = self.clock()
        memo = Memo(
            key=key,
            content=content or "",
            duration_minutes=duration,
            expires_at=now + timedelta(minutes=duration),
            last_updated=now,
            created_at=now,
        )

        try:
            created = self.store.insert(memo)
        except DuplicateKeyError:
            existing = self.store.get(key)
            if existing is not None and not is_expired(existing, now):
                raise KeyTakenError("This key is already taken.")
            # the previous holder expired but was not swept yet
            self.store.delete(key)
            try:
                created = self.store.insert(memo)
            except DuplicateKeyError:
                raise KeyTakenError("This key is already taken.") from None

        logger.info("Memo %s created, expires at %s", key_fingerprint(key), created.expires_at.isoformat())
        return created

    def get_note(self, key: Any) -> Memo:
        return self._get_live(self._require_valid_key(key))

    def update_note(self, key: Any, content: Optional[str], duration_minutes: Optional[int] = None) -> Memo:
        key = self._require_valid_key(key)
        self._get_live(key)

        now = self.clock()
        expires_at = None
        if duration_minutes is not None:
            expires_at = now + timedelta(minutes=duration_minutes)
        changes = MemoChanges(
            content=content or "",
            last_updated=now,
            duration_minutes=duration_minutes,
            expires_at=expires_at,
        )

        updated = self.store.update(key, changes)
        if updated is None:
            # lost a race with the sweeper or a concurrent delete
            raise MemoNotFoundError("Memo not found.")
        return updated

    def delete_note(self, key: Any) -> bool:
        key = self._require_valid_key(key)
        deleted = self.store.delete(key)
        if deleted:
            logger.info("Key deleted: %s", key_fingerprint(key))
        return deleted

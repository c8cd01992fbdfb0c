import hashlib
import json
import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

from memoserver.exceptions import DuplicateKeyError, StoreError
from memoserver.storage.base import Memo, MemoChanges, MemoStore, parse_dt

logger = logging.getLogger(__name__)


def _memos_dir(base_dir: Path) -> Path:
    return base_dir / "memos"


def _memo_path(base_dir: Path, key: str) -> Path:
    # keys are arbitrary user text; never use them as file names
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return _memos_dir(base_dir) / f"{digest}.json"


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
        f.flush()
        os.fsync(f.fileno())
    tmp_path.replace(path)


def _read_row(path: Path) -> dict[str, Any] | None:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None


class FileMemoStore(MemoStore):
    """One JSON file per memo under <base_dir>/memos."""

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir
        self._lock = threading.Lock()

    def get(self, key: str) -> Memo | None:
        path = _memo_path(self.base_dir, key)
        try:
            raw = _read_row(path)
            if raw is None:
                return None
            return Memo.from_row(raw)
        except (OSError, ValueError, KeyError) as exc:
            raise StoreError(f"Failed to read memo file {path.name}") from exc

    def insert(self, memo: Memo) -> Memo:
        path = _memo_path(self.base_dir, memo.key)
        with self._lock:
            if path.exists():
                raise DuplicateKeyError("Key exists")
            try:
                _atomic_write_json(path, memo.to_row())
            except OSError as exc:
                raise StoreError(f"Failed to write memo file {path.name}") from exc
        return memo

    def update(self, key: str, changes: MemoChanges) -> Memo | None:
        path = _memo_path(self.base_dir, key)
        with self._lock:
            try:
                raw = _read_row(path)
                if raw is None:
                    return None
                raw.update(changes.to_row())
                _atomic_write_json(path, raw)
                return Memo.from_row(raw)
            except (OSError, ValueError, KeyError) as exc:
                raise StoreError(f"Failed to update memo file {path.name}") from exc

    def delete(self, key: str) -> bool:
        path = _memo_path(self.base_dir, key)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            except OSError as exc:
                raise StoreError(f"Failed to delete memo file {path.name}") from exc
        return True

    def delete_expired(self, before: datetime) -> int:
        memos_dir = _memos_dir(self.base_dir)
        if not memos_dir.exists():
            return 0

        deleted = 0
        with self._lock:
            try:
                paths = sorted(memos_dir.glob("*.json"))
            except OSError as exc:
                raise StoreError("Failed to list memo files") from exc
            for p in paths:
                try:
                    raw = _read_row(p)
                    if raw is None:
                        continue
                    expires_at = parse_dt(raw["expires_at"])
                except (ValueError, KeyError, TypeError):
                    logger.warning("Skipping corrupted memo file %s", p.name)
                    continue
                except OSError as exc:
                    raise StoreError(f"Failed to read memo file {p.name}") from exc

                if expires_at < before:
                    try:
                        p.unlink()
                    except FileNotFoundError:
                        continue
                    except OSError as exc:
                        raise StoreError(f"Failed to delete memo file {p.name}") from exc
                    deleted += 1
        return deleted

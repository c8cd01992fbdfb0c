from memoserver.config import Settings
from memoserver.storage.base import Memo, MemoChanges, MemoStore, is_expired, key_fingerprint, utc_now
from memoserver.storage.file_store import FileMemoStore
from memoserver.storage.supabase_store import SupabaseMemoStore

__all__ = [
    "Memo",
    "MemoChanges",
    "MemoStore",
    "FileMemoStore",
    "SupabaseMemoStore",
    "build_store",
    "is_expired",
    "key_fingerprint",
    "utc_now",
]


def build_store(settings: Settings) -> MemoStore:
    if settings.store_backend == "file":
        return FileMemoStore(settings.data_dir)
    if settings.store_backend == "supabase":
        return SupabaseMemoStore(
            settings.supabase_url,
            settings.supabase_anon_key,
            timeout=settings.supabase_timeout_seconds,
        )
    raise ValueError(f"Unknown MEMO_STORE backend: {settings.store_backend!r}")

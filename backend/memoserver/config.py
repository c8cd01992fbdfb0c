import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Base data dir: repository_root/data (we are in backend/memoserver/)
DEFAULT_DATA_DIR = Path(__file__).resolve().parents[2] / "data"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    store_backend: str = "file"
    data_dir: Path = DEFAULT_DATA_DIR
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_timeout_seconds: float = 10.0
    default_duration_minutes: int = 30
    min_key_length: int = 4
    sweep_interval_seconds: int = 5 * 60
    sweep_enabled: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(os.path.join(os.getcwd(), ".env"))
        return cls(
            store_backend=os.getenv("MEMO_STORE", "file").strip().lower(),
            data_dir=Path(os.getenv("APP_DATA_DIR", str(DEFAULT_DATA_DIR))),
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
            supabase_timeout_seconds=_env_float("SUPABASE_TIMEOUT_SECONDS", 10.0),
            default_duration_minutes=_env_int("MEMO_DEFAULT_DURATION_MINUTES", 30),
            min_key_length=_env_int("MEMO_MIN_KEY_LENGTH", 4),
            sweep_interval_seconds=_env_int("SWEEP_INTERVAL_SECONDS", 5 * 60),
            sweep_enabled=os.getenv("SWEEP_ENABLED", "1") != "0",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

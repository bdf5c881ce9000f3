import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        storage_backend: str,
        storage_url: str,
        storage_timeout_secs: float,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.storage_backend = storage_backend
        self.storage_url = storage_url
        self.storage_timeout_secs = storage_timeout_secs
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINEASE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finease.db"
    database_url = os.getenv("FINEASE_DATABASE_URL", f"sqlite:///{default_db}")
    storage_backend = os.getenv("FINEASE_STORAGE_BACKEND", "http").strip().lower()
    storage_url = os.getenv(
        "FINEASE_STORAGE_URL", "https://finease-server-snowy.vercel.app"
    ).rstrip("/")
    storage_timeout_secs = float(os.getenv("FINEASE_STORAGE_TIMEOUT_SECS", "10"))
    log_level = os.getenv("FINEASE_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        storage_backend=storage_backend,
        storage_url=storage_url,
        storage_timeout_secs=storage_timeout_secs,
        log_level=log_level,
    )

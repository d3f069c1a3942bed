"""Runtime settings read from the environment."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from classroom_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT


@dataclass(frozen=True, slots=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    store_backend: str = "memory"
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db: str = "classroom"
    upload_dir: Path = Path("uploads")
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            host=os.getenv("CLASSROOM_HOST", DEFAULT_HOST),
            port=int(os.getenv("CLASSROOM_PORT", str(DEFAULT_PORT))),
            store_backend=os.getenv("CLASSROOM_STORE", "memory").lower(),
            mongodb_url=os.getenv("CLASSROOM_MONGODB_URL", "mongodb://localhost:27017"),
            mongodb_db=os.getenv("CLASSROOM_MONGODB_DB", "classroom"),
            upload_dir=Path(os.getenv("CLASSROOM_UPLOAD_DIR", "uploads")),
            log_level=os.getenv("CLASSROOM_LOG_LEVEL", "INFO"),
        )

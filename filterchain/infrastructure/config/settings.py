from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_API_BASE_URL = "https://4oimageapiio.erweima.ai"


def _read_appsettings_key(path: Path, key: str) -> str | None:
    # appsettings.json is an optional fallback for secrets kept outside the env
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.exception("Could not read %s", path)
        return None
    value = data.get(key) if isinstance(data, dict) else None
    return str(value) if value else None


@dataclass(frozen=True)
class Settings:
    storage_root: Path
    upload_dir: str
    snapshot_path: Path
    supabase_disabled: bool
    supabase_url: str | None
    supabase_key: str | None
    supabase_bucket: str
    image_api_key: str | None
    image_api_base_url: str
    imgbb_api_key: str | None
    ai_max_attempts: int
    ai_poll_interval: float
    ai_request_timeout: float
    log_level: str

    @classmethod
    def from_env(cls) -> Settings:
        api_key = os.getenv("IMAGE_API_KEY") or _read_appsettings_key(
            Path(os.getenv("APPSETTINGS_PATH", "appsettings.json")), "IMAGE_API_KEY"
        )
        return cls(
            storage_root=Path(os.getenv("STORAGE_ROOT", "wwwroot")),
            upload_dir=os.getenv("UPLOAD_DIR", "uploads").strip("/"),
            snapshot_path=Path(os.getenv("FILTERS_SNAPSHOT_PATH", "filters_data.json")),
            supabase_disabled=os.getenv("SUPABASE_DISABLED", "0") == "1",
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_ANON_KEY"),
            supabase_bucket=os.getenv("SUPABASE_STORAGE_BUCKET", "images"),
            image_api_key=api_key,
            image_api_base_url=os.getenv("IMAGE_API_BASE_URL", DEFAULT_IMAGE_API_BASE_URL),
            imgbb_api_key=os.getenv("IMGBB_API_KEY"),
            ai_max_attempts=int(os.getenv("AI_MAX_ATTEMPTS", "30")),
            ai_poll_interval=float(os.getenv("AI_POLL_INTERVAL", "10")),
            ai_request_timeout=float(os.getenv("AI_REQUEST_TIMEOUT", "180")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()

from __future__ import annotations

from functools import lru_cache

from filterchain.domain.services.derivation_store import DerivationStore
from filterchain.domain.services.filter_registry import FilterRegistry
from filterchain.infrastructure.ai.image_api_client import ImageApiClient
from filterchain.infrastructure.config.settings import get_settings
from filterchain.infrastructure.persistence.snapshot_file import SnapshotFile
from filterchain.infrastructure.storage.blob_storage import BlobStorage
from filterchain.infrastructure.storage.supabase_client import get_supabase_client


@lru_cache(maxsize=1)
def get_storage() -> BlobStorage:
    settings = get_settings()
    return BlobStorage(
        root_dir=settings.storage_root,
        upload_dir=settings.upload_dir,
        client=get_supabase_client(settings),
        bucket=settings.supabase_bucket,
    )


@lru_cache(maxsize=1)
def get_registry() -> FilterRegistry:
    return FilterRegistry.default()


@lru_cache(maxsize=1)
def get_store() -> DerivationStore:
    store = DerivationStore(SnapshotFile(get_settings().snapshot_path))
    store.load()
    return store


@lru_cache(maxsize=1)
def get_ai_client() -> ImageApiClient:
    settings = get_settings()
    return ImageApiClient(
        api_key=settings.image_api_key,
        base_url=settings.image_api_base_url,
        imgbb_api_key=settings.imgbb_api_key,
        max_attempts=settings.ai_max_attempts,
        poll_interval=settings.ai_poll_interval,
        timeout=settings.ai_request_timeout,
    )

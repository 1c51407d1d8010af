import io
import os
import sys
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

# Ensure project root is on sys.path so 'filterchain' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ.setdefault("STORAGE_ROOT", ".local_storage")
os.environ.setdefault("FILTERS_SNAPSHOT_PATH", ".local_storage/filters_data.json")

from filterchain.domain.services.derivation_store import DerivationStore  # noqa: E402
from filterchain.domain.services.filter_registry import FilterRegistry  # noqa: E402
from filterchain.infrastructure.persistence.snapshot_file import SnapshotFile  # noqa: E402
from filterchain.infrastructure.storage.blob_storage import BlobStorage  # noqa: E402


def make_image_bytes(w=6, h=4, color=(200, 120, 40), fmt="PNG") -> bytes:
    # a gradient keeps filters like blur and rotate from being no-ops
    arr = np.zeros((h, w, 3), dtype=np.uint8)
    arr[:, :] = color
    arr[:, :, 0] = np.linspace(0, 255, w, dtype=np.uint8)[None, :]
    img = Image.fromarray(arr)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture()
def storage(tmp_path) -> BlobStorage:
    return BlobStorage(root_dir=tmp_path / "wwwroot", upload_dir="uploads")


@pytest.fixture()
def snapshot(tmp_path) -> SnapshotFile:
    return SnapshotFile(tmp_path / "filters_data.json")


@pytest.fixture()
def store(snapshot) -> DerivationStore:
    return DerivationStore(snapshot)


@pytest.fixture()
def registry() -> FilterRegistry:
    return FilterRegistry.default()


@pytest.fixture()
def put_image(storage):
    """Write a small test image at ``path`` and return the path."""

    def _put(path: str, fmt: str = "PNG", **kwargs) -> str:
        storage.write_bytes(path, make_image_bytes(fmt=fmt, **kwargs))
        return path

    return _put


@pytest.fixture()
def client(storage, store, registry) -> TestClient:
    # lazy import after env configured
    from filterchain.infrastructure.api.dependencies import get_registry, get_storage, get_store
    from filterchain.main import create_app

    app = create_app()
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_registry] = lambda: registry
    return TestClient(app)


@pytest.fixture()
def image_bytes():
    return make_image_bytes

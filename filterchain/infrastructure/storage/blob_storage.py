from __future__ import annotations

import logging
import posixpath
import uuid
from io import BytesIO
from pathlib import Path

import numpy as np
from PIL import Image
from supabase import Client

from filterchain.domain.errors import PathNotFound
from filterchain.domain.services import path_naming

logger = logging.getLogger(__name__)

_FORMAT_BY_EXT = {".jpg": "JPEG", ".jpeg": "JPEG", ".png": "PNG"}


def format_for(path: str) -> str:
    _, ext = path_naming.split_name(path)
    ext = ext.lower()
    if ext in _FORMAT_BY_EXT:
        return _FORMAT_BY_EXT[ext]
    return Image.registered_extensions().get(ext, "PNG")


def content_type_for(fmt: str) -> str:
    return Image.MIME.get(fmt.upper(), "image/png")


def decode_image(data: bytes) -> np.ndarray:
    img = Image.open(BytesIO(data)).convert("RGB")
    return np.asarray(img).astype(np.float32) / 255.0


def encode_image(array: np.ndarray, fmt: str) -> bytes:
    arr = np.clip(array, 0.0, 1.0).astype(np.float32)
    if arr.ndim == 2:
        img = Image.fromarray((arr * 255.0).round().astype("uint8"))
    else:
        img = Image.fromarray((arr[..., :3] * 255.0).round().astype("uint8"))
    buf = BytesIO()
    if fmt == "JPEG":
        img.save(buf, format=fmt, quality=95)
    else:
        img.save(buf, format=fmt)
    return buf.getvalue()


class BlobStorage:
    """Image storage keyed by ``/``-rooted paths.

    Objects live on local disk under ``root_dir`` unless a Supabase client is
    given, in which case the same keys (without the leading slash) are used in
    the storage bucket.
    """

    def __init__(
        self,
        root_dir: Path | str,
        upload_dir: str = "uploads",
        client: Client | None = None,
        bucket: str = "images",
    ) -> None:
        self.root_dir = Path(root_dir)
        self.upload_dir = upload_dir.strip("/")
        self.client = client
        self.bucket = bucket
        if self.client is None:
            (self.root_dir / self.upload_dir).mkdir(parents=True, exist_ok=True)

    @property
    def upload_folder(self) -> str:
        return "/" + self.upload_dir

    def _key(self, path: str) -> str:
        """Bucket-relative key for ``path``; keys may not climb above the root."""
        key = posixpath.normpath(path_naming.normalize(path))
        if key == ".." or key.startswith("../"):
            raise PathNotFound(path)
        return "" if key == "." else key

    def _local(self, path: str) -> Path:
        root = self.root_dir.resolve()
        target = (root / self._key(path)).resolve()
        # symlinks inside the root must not lead out of it either
        if not target.is_relative_to(root):
            raise PathNotFound(path)
        return target

    def _bucket(self):
        return self.client.storage.from_(self.bucket)  # type: ignore[union-attr]

    # ------------------------------------------------------------------
    # raw bytes
    # ------------------------------------------------------------------
    def exists(self, path: str) -> bool:
        try:
            if self.client is None:
                return self._local(path).is_file()
            self._key(path)
        except PathNotFound:
            return False
        return path_naming.file_name(path) in self.list_names(path_naming.directory(path))

    def read_bytes(self, path: str) -> bytes:
        if self.client is None:
            try:
                return self._local(path).read_bytes()
            except (FileNotFoundError, IsADirectoryError):
                raise PathNotFound(path) from None
        key = self._key(path)
        try:  # pragma: no cover - network
            return self._bucket().download(key)
        except Exception as exc:  # pragma: no cover
            raise PathNotFound(path) from exc

    def write_bytes(self, path: str, data: bytes, content_type: str = "image/png") -> None:
        if self.client is None:
            target = self._local(path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            return
        key = self._key(path)
        try:  # pragma: no cover - network
            self._bucket().upload(
                path=key,
                file=data,
                file_options={"content-type": content_type, "upsert": "true"},
            )
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"Storage upload failed: {exc}") from exc

    def list_names(self, directory: str) -> list[str]:
        """File names directly inside ``directory``; empty outside the root."""
        try:
            key = self._key(directory)
            folder = self._local(directory) if self.client is None else None
        except PathNotFound:
            return []
        if folder is not None:
            if not folder.is_dir():
                return []
            return sorted(p.name for p in folder.iterdir() if p.is_file())
        try:  # pragma: no cover - network
            entries = self._bucket().list(key)
        except Exception:  # pragma: no cover
            logger.exception("Could not list %s", directory)
            return []
        return sorted(e["name"] for e in entries if e.get("name"))  # pragma: no cover

    # ------------------------------------------------------------------
    # images
    # ------------------------------------------------------------------
    def save_upload(self, data: bytes, filename: str | None) -> str:
        _, ext = path_naming.split_name(filename or "")
        ext = ext.lower() or ".png"
        path = posixpath.join(self.upload_folder, f"{uuid.uuid4().hex}{ext}")
        self.write_bytes(path, data, content_type_for(format_for(path)))
        logger.info("Stored upload %s as %s", filename, path)
        return path

    def load_array(self, path: str) -> np.ndarray:
        return decode_image(self.read_bytes(path))

    def save_array(self, path: str, array: np.ndarray) -> None:
        fmt = format_for(path)
        self.write_bytes(path, encode_image(array, fmt), content_type_for(fmt))

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

from PIL import Image

from filterchain.infrastructure.storage.blob_storage import BlobStorage


@dataclass(frozen=True)
class UploadedImage:
    path: str
    width: int
    height: int


@dataclass
class UploadImageUseCase:
    storage: BlobStorage

    def execute(self, data: bytes, filename: str | None) -> UploadedImage:
        """
        Store an uploaded image as a new root.

        The bytes are validated with Pillow first; anything it cannot open is
        rejected with ValueError. Uploads are never tracked by the derivation
        store, a fresh upload is its own original.
        """
        try:
            with Image.open(BytesIO(data)) as img:
                img.verify()
            with Image.open(BytesIO(data)) as img:
                width, height = img.size
        except Exception as exc:
            raise ValueError(f"Invalid image file: {exc}") from exc
        path = self.storage.save_upload(data, filename)
        return UploadedImage(path=path, width=width, height=height)

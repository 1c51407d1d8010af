from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable
from urllib.parse import unquote

from filterchain.domain.entities.applied_filter import AI_EDIT_FILTER, RESULT_PATH_PARAM, AppliedFilter
from filterchain.domain.errors import ExternalProviderError, PathNotFound
from filterchain.domain.services import path_naming
from filterchain.domain.services.derivation_store import DerivationStore
from filterchain.infrastructure.ai.image_api_client import ImageApiClient
from filterchain.infrastructure.storage.blob_storage import BlobStorage, decode_image, encode_image

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def _decode_result(data: bytes):
    try:
        return decode_image(data)
    except OSError as exc:
        raise ExternalProviderError(f"Provider returned an unreadable image: {exc}") from exc


@dataclass
class GenerateImageUseCase:
    storage: BlobStorage
    client: ImageApiClient
    clock: Callable[[], str] = field(default=_timestamp)

    def execute(self, prompt: str) -> str:
        """Generate an image from text; the result is a new root image."""
        if not prompt.strip():
            raise ValueError("Prompt must not be empty")
        array = _decode_result(self.client.generate(prompt))
        path = posixpath.join(self.storage.upload_folder, f"ai_generated_{self.clock()}.jpg")
        self.storage.save_array(path, array)
        logger.info("Generated %s from prompt", path)
        return path


@dataclass
class EditImageUseCase:
    """
    Edit an image with a text command through the AI provider.

    The provider call can take minutes and is made before the derivation
    store is touched. The result is recorded as an ``AI Edit`` derivation of
    the source, so it resolves to the same original as ``path``. The entry
    keeps the result's path: later filters start from the AI pixels instead
    of replaying from the original.
    """

    storage: BlobStorage
    store: DerivationStore
    client: ImageApiClient
    clock: Callable[[], str] = field(default=_timestamp)

    def execute(self, path: str, command: str) -> str:
        if not command.strip():
            raise ValueError("Command must not be empty")
        path = path_naming.ensure_leading_slash(path)
        source = self._locate(path)
        image = self.storage.load_array(source)

        edited = _decode_result(self.client.edit(encode_image(image, "JPEG"), command))

        # without the _filtered marker, a later filter writes a new file
        # instead of overwriting the AI result in place
        stem, ext = path_naming.split_name(path_naming.strip_filtered(source) or source)
        new_path = posixpath.join(self.storage.upload_folder, f"{stem}_ai_{self.clock()}{ext}")
        self.storage.save_array(new_path, edited)

        self.store.record_derivation(
            new_path,
            source,
            AppliedFilter(
                filter_name=AI_EDIT_FILTER,
                parameters={"command": command, RESULT_PATH_PARAM: new_path},
            ),
        )
        self.store.save()
        logger.info("AI edit of %s saved as %s", path, new_path)
        return new_path

    def _locate(self, path: str) -> str:
        """Find the stored file for ``path``, tolerating URL-encoded or renamed uploads."""
        if self.storage.exists(path):
            return path
        folder = self.storage.upload_folder
        decoded = posixpath.join(folder, unquote(path_naming.file_name(path)))
        if self.storage.exists(decoded):
            return decoded
        fid = path_naming.file_id(path)
        if fid:
            for name in self.storage.list_names(folder):
                if name.startswith(fid):
                    return posixpath.join(folder, name)
        raise PathNotFound(path)

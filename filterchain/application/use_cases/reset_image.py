from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass

from filterchain.domain.services import path_naming
from filterchain.domain.services.derivation_store import DerivationStore
from filterchain.infrastructure.storage.blob_storage import BlobStorage

logger = logging.getLogger(__name__)


@dataclass
class ResetImageUseCase:
    """
    Roll an image back to its original and forget the filters applied to it.

    Derived paths are not named canonically, so the original is found with a
    cascade of increasingly loose matches. The first step that produces a
    path wins; every step also evicts the entries it matched. The cascade
    never fails: when nothing matches, ``path`` is treated as already
    original and returned unchanged.
    """

    storage: BlobStorage
    store: DerivationStore

    def execute(self, path: str) -> str:
        path = path_naming.ensure_leading_slash(path)
        with self.store.lock:
            resolved = self._resolve(path)
        self.store.save()
        logger.info("Reset %s -> %s", path, resolved)
        return resolved

    def _resolve(self, path: str) -> str:
        store = self.store
        name = path_naming.file_name(path)
        fid = path_naming.file_id(path)
        _, ext = path_naming.split_name(path)

        # exact derivation entry
        root = store.root_of_key(path)
        if root is not None:
            store.evict(path)
            return root

        # same path spelled differently
        normalized = path_naming.normalize(path)
        for key in store.derived_keys():
            if path_naming.normalize(key) == normalized:
                return store.evict(key) or path

        # same file name in another directory
        by_name = [k for k in store.derived_keys() if path_naming.file_name(k) == name]
        if by_name:
            for key in by_name:
                store.evict(key)
            found = self._find_original(path, fid, ext)
            if found is not None:
                return found

        # path is itself a root: drop everything derived from it and keep going
        for key in store.derived_keys():
            if store.root_of_key(key) == path:
                store.evict(key)

        # same file id
        if fid:
            by_id = [k for k in store.derived_keys() if path_naming.file_id(k) == fid]
            if by_id:
                for key in by_id:
                    store.evict(key)
                found = self._find_original(path, fid, ext)
                if found is not None:
                    return found

        # name with the _filtered marker removed
        stripped = path_naming.strip_filtered(path)
        if stripped is not None and self.storage.exists(stripped):
            store.evict_chain(path)
            return stripped

        store.evict_chain(path)
        for key in store.chain_keys():
            if path_naming.file_name(key) == name:
                store.evict_chain(key)
        return path

    def _find_original(self, path: str, fid: str, ext: str) -> str | None:
        """Locate the stored file that looks most like the upload behind ``fid``."""
        if not fid:
            return None
        folder = path_naming.directory(path)
        if folder in ("", "/"):
            folder = self.storage.upload_folder
        exact = posixpath.join(folder, f"{fid}{ext}")
        if self.storage.exists(exact):
            return exact
        candidates = [
            n
            for n in self.storage.list_names(folder)
            if n.startswith(fid) and path_naming.FILTERED_MARKER not in n
        ]
        if not candidates:
            return None
        # fewest suffixes looks most like the original upload
        return posixpath.join(folder, min(candidates, key=len))

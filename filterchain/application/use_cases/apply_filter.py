from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from filterchain.domain.entities.applied_filter import AppliedFilter, replay_plan
from filterchain.domain.errors import FilterApplicationFailed, PathNotFound
from filterchain.domain.services import path_naming
from filterchain.domain.services.derivation_store import DerivationStore, StoreEntry
from filterchain.domain.services.filter_registry import FilterRegistry
from filterchain.infrastructure.storage.blob_storage import BlobStorage

logger = logging.getLogger(__name__)


def _convert_text(text: str) -> Any:
    try:
        number = float(text)
    except ValueError:
        pass
    else:
        return number if math.isfinite(number) else text
    try:
        return int(text)
    except ValueError:
        return text


def convert_parameters(raw: dict[str, Any]) -> dict[str, Any]:
    """Type raw form values: float first, then int, otherwise the string.

    Float is tried first, so whole numbers such as ``"3"`` become ``3.0``.
    Filters rely on this precedence when they branch on parameter type.
    NaN and infinities stay text so chains remain valid JSON; filters reject
    them when they cast.
    """
    converted: dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(value, float) and not math.isfinite(value):
            value = str(value)
        converted[key] = _convert_text(value) if isinstance(value, str) else value
    return converted


@dataclass
class ApplyFilterUseCase:
    storage: BlobStorage
    store: DerivationStore
    registry: FilterRegistry

    def execute(self, path: str, filter_name: str, raw_params: dict[str, Any]) -> str:
        """
        Apply a filter and persist the result as a derived image.

        The new image is never computed from ``path``'s pixels. The full chain
        (everything already applied plus the new filter) is replayed on the
        root image, so stacking filters does not compound artifacts. An AI
        edit in the chain cannot be replayed; its stored result is used as the
        starting point for the steps after it.

        Returns:
            The derived path: ``path`` itself when it already carries the
            ``_filtered`` marker, otherwise ``path`` with the marker inserted.

        Raises:
            UnknownFilter: the filter is not registered
            PathNotFound: the root image is missing from storage
            FilterApplicationFailed: a filter in the chain failed
        """
        self.registry.lookup(filter_name)
        params = convert_parameters(raw_params)
        path = path_naming.ensure_leading_slash(path)
        new_path = path_naming.filtered_path(path)
        new_filter = AppliedFilter(filter_name=filter_name, parameters=params)

        with self.store.lock:
            root = self.store.resolve_root(path)
            if not self.storage.exists(root):
                raise PathNotFound(root)
            previous = self.store.entry(new_path)
            self.store.record_derivation(new_path, path, new_filter)
            root = self.store.resolve_root(new_path)
            base, steps = replay_plan(root, self.store.chain_for(new_path))

        # pixels are loaded and written outside the lock from the captured chain
        try:
            image = self.storage.load_array(base)
            result = self.registry.replay(image, steps)
            self.storage.save_array(new_path, result)
        except (FilterApplicationFailed, PathNotFound):
            self._rollback(new_path, previous)
            raise
        except (OSError, RuntimeError) as exc:
            self._rollback(new_path, previous)
            raise FilterApplicationFailed(filter_name, str(exc)) from exc

        self.store.save()
        logger.info("Applied %s to %s -> %s", filter_name, path, new_path)
        return new_path

    def _rollback(self, new_path: str, previous: StoreEntry) -> None:
        logger.warning("Rolling back derivation of %s", new_path)
        self.store.restore_entry(new_path, previous)

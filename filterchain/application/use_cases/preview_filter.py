from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from filterchain.application.use_cases.apply_filter import convert_parameters
from filterchain.domain.entities.applied_filter import AppliedFilter, replay_plan
from filterchain.domain.errors import FilterApplicationFailed, PathNotFound
from filterchain.domain.services import path_naming
from filterchain.domain.services.derivation_store import DerivationStore
from filterchain.domain.services.filter_registry import FilterRegistry
from filterchain.infrastructure.storage.blob_storage import (
    BlobStorage,
    content_type_for,
    encode_image,
    format_for,
)


@dataclass(frozen=True)
class PreviewResult:
    data: bytes
    content_type: str
    base_path: str


@dataclass
class PreviewFilterUseCase:
    """
    Show what a filter would do without keeping anything.

    The preview is rendered from the root of ``path`` with the tracked chain
    plus the candidate filter appended. Nothing is written to storage and the
    derivation store is only read, so previews can be requested repeatedly
    while the user adjusts parameters.
    """

    storage: BlobStorage
    store: DerivationStore
    registry: FilterRegistry

    def execute(self, path: str, filter_name: str, raw_params: dict[str, Any]) -> PreviewResult:
        self.registry.lookup(filter_name)
        params = convert_parameters(raw_params)
        path = path_naming.ensure_leading_slash(path)

        with self.store.lock:
            root = self.store.resolve_root(path)
            chain = self.store.chain_for(path)
        chain.append(AppliedFilter(filter_name=filter_name, parameters=params))
        base, steps = replay_plan(root, chain)

        if not self.storage.exists(base):
            raise PathNotFound(base)
        try:
            image = self.storage.load_array(base)
        except OSError as exc:
            raise FilterApplicationFailed(filter_name, str(exc)) from exc
        result = self.registry.replay(image, steps)

        fmt = format_for(path)
        return PreviewResult(
            data=encode_image(result, fmt),
            content_type=content_type_for(fmt),
            base_path=base,
        )

from __future__ import annotations

import logging
from typing import Iterable

import numpy as np

from filterchain.domain.entities.applied_filter import AppliedFilter, FilterSpec
from filterchain.domain.errors import DuplicateFilterError, FilterApplicationFailed, UnknownFilter
from filterchain.domain.services.filters import DEFAULT_FILTERS, FilterFn

logger = logging.getLogger(__name__)


class FilterRegistry:
    """Name -> filter capability mapping, fixed at construction."""

    def __init__(self, filters: Iterable[tuple[str, FilterFn, str]]) -> None:
        capabilities: dict[str, FilterFn] = {}
        specs: list[FilterSpec] = []
        for name, fn, description in filters:
            if name in capabilities:
                raise DuplicateFilterError(f"Filter '{name}' is registered twice")
            capabilities[name] = fn
            specs.append(FilterSpec(name=name, description=description))
        self._capabilities = capabilities
        self._specs = tuple(specs)
        logger.info("Registered %d filters", len(specs))

    @classmethod
    def default(cls) -> FilterRegistry:
        return cls(DEFAULT_FILTERS)

    def lookup(self, name: str) -> FilterFn:
        try:
            return self._capabilities[name]
        except KeyError:
            raise UnknownFilter(name) from None

    def list(self) -> list[FilterSpec]:
        return list(self._specs)

    def replay(self, image: np.ndarray, chain: Iterable[AppliedFilter]) -> np.ndarray:
        """Apply ``chain`` to ``image`` left to right.

        Entries naming something that is not a registered filter (AI edits,
        filters removed since the chain was recorded) are skipped.
        """
        out = image
        for applied in chain:
            fn = self._capabilities.get(applied.filter_name)
            if fn is None:
                logger.warning("Skipping unregistered filter %s during replay", applied.filter_name)
                continue
            try:
                out = fn(out, applied.parameters)
            except (ValueError, TypeError, KeyError, ArithmeticError) as exc:
                raise FilterApplicationFailed(applied.filter_name, str(exc)) from exc
        return out

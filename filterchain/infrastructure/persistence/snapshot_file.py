"""JSON checkpoint of the derivation store.

Layout::

    {
      "originalImages": {"<derived path>": "<root path>"},
      "appliedFilters": {"<path>": [{"filterName": "...", "parameters": {...}}]}
    }

Missing keys read as empty. Failures are logged and never raised: a broken
file on load means starting empty, a failed save is retried by the next
mutation.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from filterchain.domain.entities.applied_filter import AppliedFilter

logger = logging.getLogger(__name__)


class SnapshotFile:
    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> tuple[dict[str, str], dict[str, list[AppliedFilter]]]:
        if not self.path.exists():
            return {}, {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            original_of = {
                str(k): str(v) for k, v in (data.get("originalImages") or {}).items()
            }
            chains = {
                str(k): [AppliedFilter.from_dict(item) for item in (v or [])]
                for k, v in (data.get("appliedFilters") or {}).items()
            }
        except (OSError, ValueError, TypeError, KeyError, AttributeError):
            logger.exception("Failed to load filter snapshot from %s", self.path)
            return {}, {}
        return original_of, chains

    def save(self, original_of: dict[str, str], chains: dict[str, list[AppliedFilter]]) -> None:
        payload = {
            "appliedFilters": {k: [f.to_dict() for f in v] for k, v in chains.items()},
            "originalImages": dict(original_of),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(payload, fh, indent=2, ensure_ascii=False)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to save filter snapshot to %s", self.path)
            return
        logger.info("Saved %d filter chains and %d originals", len(chains), len(original_of))

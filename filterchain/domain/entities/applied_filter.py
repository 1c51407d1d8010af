from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

AI_EDIT_FILTER = "AI Edit"
# AI edits cannot be replayed, so they remember where their pixels were stored
RESULT_PATH_PARAM = "result_path"


@dataclass(frozen=True)
class FilterSpec:
    name: str
    description: str


@dataclass(frozen=True)
class AppliedFilter:
    filter_name: str
    parameters: dict[str, Any] = field(default_factory=dict)

    @property
    def replay_base(self) -> str | None:
        """Stored image that already contains this step, if any."""
        if self.filter_name != AI_EDIT_FILTER:
            return None
        base = self.parameters.get(RESULT_PATH_PARAM)
        return base if isinstance(base, str) and base else None

    def to_dict(self) -> dict[str, Any]:
        return {"filterName": self.filter_name, "parameters": dict(self.parameters)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppliedFilter:
        return cls(
            filter_name=str(data["filterName"]),
            parameters=dict(data.get("parameters") or {}),
        )


def replay_plan(root: str, chain: list[AppliedFilter]) -> tuple[str, list[AppliedFilter]]:
    """Image to start from and the steps still to run on it.

    Replay normally starts from ``root``. When the chain holds an AI edit, the
    newest one is the starting point and only later steps are replayed.
    """
    for idx in range(len(chain) - 1, -1, -1):
        base = chain[idx].replay_base
        if base is not None:
            return base, chain[idx + 1 :]
    return root, list(chain)

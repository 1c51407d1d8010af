"""Tracks which original image every derived image comes from.

Two mappings are kept together:

* ``original_of``: derived path -> root path
* ``filter_chain_of``: path -> ordered filters that turn the root into it

Roots never appear as keys of ``original_of``. Both mappings are guarded by a
single re-entrant lock; multi-step callers hold ``store.lock`` across their
whole read-modify-write sequence.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Protocol

from filterchain.domain.entities.applied_filter import AppliedFilter
from filterchain.domain.services import path_naming

logger = logging.getLogger(__name__)


class Snapshot(Protocol):
    def save(
        self, original_of: dict[str, str], chains: dict[str, list[AppliedFilter]]
    ) -> None: ...

    def load(self) -> tuple[dict[str, str], dict[str, list[AppliedFilter]]]: ...


def _copy_key(applied: AppliedFilter) -> object:
    # repeated AI edits are distinct steps, each with its own stored result
    base = applied.replay_base
    return applied.filter_name if base is None else (applied.filter_name, base)


@dataclass(frozen=True)
class StoreEntry:
    """Everything the store knows about one key, used for rollback."""

    root: str | None
    chain: tuple[AppliedFilter, ...] | None


class DerivationStore:
    def __init__(self, snapshot: Snapshot | None = None) -> None:
        self.lock = threading.RLock()
        self._original_of: dict[str, str] = {}
        self._chains: dict[str, list[AppliedFilter]] = {}
        self._snapshot = snapshot

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def load(self) -> None:
        if self._snapshot is None:
            return
        original_of, chains = self._snapshot.load()
        self.replace_state(original_of, chains)
        logger.info(
            "Loaded %d filter chains and %d originals", len(self._chains), len(self._original_of)
        )

    def save(self) -> None:
        if self._snapshot is None:
            return
        with self.lock:
            original_of, chains = self.export()
            self._snapshot.save(original_of, chains)

    def export(self) -> tuple[dict[str, str], dict[str, list[AppliedFilter]]]:
        with self.lock:
            return dict(self._original_of), {k: list(v) for k, v in self._chains.items()}

    def replace_state(
        self, original_of: dict[str, str], chains: dict[str, list[AppliedFilter]]
    ) -> None:
        with self.lock:
            self._original_of = dict(original_of)
            self._chains = {k: list(v) for k, v in chains.items()}
            # snapshots written by older builds may hold intermediate roots
            for key in list(self._original_of):
                self._reattach(key)

    # ------------------------------------------------------------------
    # derivation
    # ------------------------------------------------------------------
    def record_derivation(self, new_path: str, source_path: str, new_filter: AppliedFilter) -> None:
        with self.lock:
            root = self._ultimate_root(source_path)
            if root != new_path:
                self._original_of[new_path] = root
                # anything rooted at new_path now hangs off an intermediate
                for key, value in list(self._original_of.items()):
                    if value == new_path:
                        self._original_of[key] = root
            else:
                self._original_of.pop(new_path, None)

            chain = self._chains.setdefault(new_path, [])
            if source_path != new_path and source_path in self._chains:
                present = {_copy_key(f) for f in chain}
                for existing in self._chains[source_path]:
                    if _copy_key(existing) not in present:
                        chain.append(existing)
                        present.add(_copy_key(existing))
            chain.append(new_filter)
            logger.info(
                "Recorded %s on %s (root %s, %d filters)",
                new_filter.filter_name,
                new_path,
                root,
                len(chain),
            )

    def resolve_root(self, path: str) -> str:
        with self.lock:
            return self._original_of.get(path, path)

    def chain_for(self, path: str) -> list[AppliedFilter]:
        with self.lock:
            chain = self._lookup_chain(path)
            if chain is None:
                chain = self._chain_by_root(path)
            if chain is None:
                chain = self._chain_by_file_id(path)
            if chain is None:
                stripped = path_naming.strip_filtered(path)
                if stripped is not None:
                    chain = self._lookup_chain(stripped)
            if chain is None:
                logger.debug("No filters tracked for %s", path)
                return []
            return list(chain)

    # ------------------------------------------------------------------
    # entry-level access for the pipeline and reset
    # ------------------------------------------------------------------
    def entry(self, path: str) -> StoreEntry:
        with self.lock:
            chain = self._chains.get(path)
            return StoreEntry(
                root=self._original_of.get(path),
                chain=tuple(chain) if chain is not None else None,
            )

    def restore_entry(self, path: str, entry: StoreEntry) -> None:
        with self.lock:
            if entry.root is None:
                self._original_of.pop(path, None)
            else:
                self._original_of[path] = entry.root
            if entry.chain is None:
                self._chains.pop(path, None)
            else:
                self._chains[path] = list(entry.chain)

    def evict(self, path: str) -> str | None:
        """Forget a derived path entirely; returns the root it pointed to."""
        with self.lock:
            self._chains.pop(path, None)
            root = self._original_of.pop(path, None)
            if root is not None:
                logger.info("Evicted %s (root %s)", path, root)
            return root

    def evict_chain(self, path: str) -> bool:
        with self.lock:
            return self._chains.pop(path, None) is not None

    def derived_keys(self) -> list[str]:
        with self.lock:
            return list(self._original_of)

    def chain_keys(self) -> list[str]:
        with self.lock:
            return list(self._chains)

    def root_of_key(self, key: str) -> str | None:
        with self.lock:
            return self._original_of.get(key)

    # ------------------------------------------------------------------
    # internals, callers hold the lock
    # ------------------------------------------------------------------
    def _ultimate_root(self, path: str) -> str:
        seen = {path}
        current = path
        while current in self._original_of:
            nxt = self._original_of[current]
            if nxt in seen:
                break
            seen.add(nxt)
            current = nxt
        return current

    def _reattach(self, key: str) -> None:
        root = self._ultimate_root(key)
        if root == key:
            self._original_of.pop(key, None)
        else:
            self._original_of[key] = root

    def _lookup_chain(self, path: str) -> list[AppliedFilter] | None:
        if path in self._chains:
            return self._chains[path]
        normalized = path_naming.normalize(path)
        for key, chain in self._chains.items():
            if path_naming.normalize(key) == normalized:
                return chain
        name = path_naming.file_name(path)
        for key, chain in self._chains.items():
            if path_naming.file_name(key) == name:
                return chain
        return None

    def _chain_by_root(self, path: str) -> list[AppliedFilter] | None:
        normalized = path_naming.normalize(path)
        for derived, root in self._original_of.items():
            if path_naming.normalize(root) == normalized and derived in self._chains:
                return self._chains[derived]
        return None

    def _chain_by_file_id(self, path: str) -> list[AppliedFilter] | None:
        fid = path_naming.file_id(path)
        if not fid:
            return None
        combined: list[AppliedFilter] = []
        seen: set[str] = set()
        found = False
        for key, chain in self._chains.items():
            if path_naming.file_id(key) != fid:
                continue
            found = True
            for applied in chain:
                if applied.filter_name not in seen:
                    seen.add(applied.filter_name)
                    combined.append(applied)
        return combined if found else None

"""Versioned in-memory state store.

This is the only component allowed to change the state tree. Trees are
copy-on-write: a merge builds a new frozen :class:`StateTree` and swaps it in
under the store lock, so a reader always sees either the full old tree or
the full new one.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from pyfarmbot.models._base import SparseModel
from pyfarmbot.models.state import StateTree
from pyfarmbot.state.events import ChangeKind, StateChange

_logger = logging.getLogger(__name__)

StateObserver = Callable[[StateChange], None]


def _merge_value(existing: Any, incoming: Any) -> Any:
    """Merge *incoming* over *existing*; return *existing* itself when nothing changes.

    Sparse sections and mappings recurse. Anything else (records, scalars)
    is last-write-wins.
    """
    if isinstance(existing, SparseModel) and isinstance(incoming, SparseModel):
        return _merge_model(existing, incoming)

    if isinstance(existing, dict) and isinstance(incoming, dict):
        merged: dict[Any, Any] | None = None
        for key, value in incoming.items():
            if value is None:
                continue
            if key in existing:
                new_value = _merge_value(existing[key], value)
                if new_value is existing[key]:
                    continue
            else:
                new_value = value
            if merged is None:
                merged = dict(existing)
            merged[key] = new_value
        return existing if merged is None else merged

    return existing if existing == incoming else incoming


def _merge_model(current: SparseModel, patch: SparseModel) -> SparseModel:
    """Field-by-field union: fields the patch did not report are left alone."""
    updates: dict[str, Any] = {}
    for name in patch.model_fields_set:
        incoming = getattr(patch, name)
        if incoming is None:
            continue
        existing = getattr(current, name)
        merged = _merge_value(existing, incoming)
        if merged is not existing:
            updates[name] = merged
    if not updates:
        return current
    return current.model_copy(update=updates)


def merge_trees(current: StateTree, patch: StateTree) -> StateTree:
    """Return *current* with *patch* merged in (``current`` if nothing changed)."""
    merged = _merge_model(current, patch)
    assert isinstance(merged, StateTree)  # noqa: S101
    return merged


class StateStore:
    """Authoritative mirror of the device state.

    ``merge`` and ``replace_all`` are expected to be called from the engine's
    single owner task; ``snapshot`` may be called from any thread.
    """

    def __init__(self, *, accept_legacy_manifests: bool = True) -> None:
        self._accept_legacy_manifests = accept_legacy_manifests
        self._lock = threading.Lock()
        self._tree = StateTree()
        self._version = 0
        self._epoch = 0
        self._observers: list[StateObserver] = []

    @property
    def version(self) -> int:
        """Incremented by every merge or replace that changed the tree."""
        return self._version

    @property
    def epoch(self) -> int:
        """Incremented by every :meth:`replace_all`."""
        return self._epoch

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """Register a change observer. Returns a function that unregisters it."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._observers.remove(observer)

        return _unsubscribe

    def snapshot(self) -> StateTree:
        """Return an independent point-in-time copy of the state tree."""
        with self._lock:
            tree = self._tree
        return tree.model_copy(deep=True)

    def merge(self, partial: StateTree | Mapping[str, Any]) -> bool:
        """Merge a partial tree. Returns ``False`` when nothing changed.

        Raises :class:`pydantic.ValidationError` if *partial* is a mapping
        that does not describe a valid partial tree.
        """
        patch = self._prepare(partial)
        with self._lock:
            previous = self._tree
            current = merge_trees(previous, patch)
            if current is previous:
                return False
            self._tree = current
            self._version += 1
            version, epoch = self._version, self._epoch
        self._notify(ChangeKind.MERGE, previous, current, version, epoch)
        return True

    def replace_all(self, full: StateTree | Mapping[str, Any]) -> None:
        """Discard the current tree and re-baseline from a full snapshot."""
        tree = self._prepare(full)
        with self._lock:
            previous = self._tree
            self._tree = tree
            self._version += 1
            self._epoch += 1
            version, epoch = self._version, self._epoch
        _logger.debug("State re-baselined epoch=%d version=%d", epoch, version)
        self._notify(ChangeKind.REPLACE, previous, tree, version, epoch)

    def _prepare(self, value: StateTree | Mapping[str, Any]) -> StateTree:
        tree = value if isinstance(value, StateTree) else StateTree.model_validate(value)
        if self._accept_legacy_manifests or "process_info" not in tree.model_fields_set:
            return tree

        farmwares = tree.process_info.farmwares
        legacy = sorted(name for name, manifest in farmwares.items() if manifest.is_legacy)
        if not legacy:
            return tree
        _logger.warning("Dropping legacy Farmware manifests (legacy support disabled): %s", legacy)
        kept = {name: manifest for name, manifest in farmwares.items() if not manifest.is_legacy}
        process_info = tree.process_info.model_copy(update={"farmwares": kept})
        return tree.model_copy(update={"process_info": process_info})

    def _notify(
        self,
        kind: ChangeKind,
        previous: StateTree,
        current: StateTree,
        version: int,
        epoch: int,
    ) -> None:
        observers = list(self._observers)
        if not observers:
            return
        change = StateChange(
            kind=kind,
            previous=previous.model_copy(deep=True),
            current=current.model_copy(deep=True),
            version=version,
            epoch=epoch,
        )
        for observer in observers:
            try:
                observer(change)
            except Exception:
                _logger.warning("State observer %r failed", observer, exc_info=True)

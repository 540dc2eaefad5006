"""Ordered scene collection with keyed, copy-on-write updates."""
from __future__ import annotations

import dataclasses
import logging
from typing import Callable, Iterable

from .models import Scene

log = logging.getLogger(__name__)

Listener = Callable[[tuple[Scene, ...]], None]

# Fields a caller may patch; id and the source texts are fixed at creation.
_MUTABLE_FIELDS = frozenset({"image_url", "is_loading", "error"})


class SceneStore:
    """Holds the storyboard's scenes in segmentation order.

    Every change builds a new tuple and swaps it in with a single assignment.
    Listeners are called synchronously with the new snapshot after each
    applied change, so every update is observable (no batching).
    """

    def __init__(self) -> None:
        self._scenes: tuple[Scene, ...] = ()
        self._listeners: list[Listener] = []

    @property
    def scenes(self) -> tuple[Scene, ...]:
        return self._scenes

    def __len__(self) -> int:
        return len(self._scenes)

    def get(self, scene_id: str) -> Scene | None:
        for scene in self._scenes:
            if scene.id == scene_id:
                return scene
        return None

    def position(self, scene_id: str) -> int | None:
        """1-based position of the scene, as shown to the user."""
        for i, scene in enumerate(self._scenes, start=1):
            if scene.id == scene_id:
                return i
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def replace_all(self, scenes: Iterable[Scene]) -> None:
        new = tuple(scenes)
        ids = [s.id for s in new]
        if len(set(ids)) != len(ids):
            raise ValueError("Scene ids must be unique")
        self._commit(new)

    def clear(self) -> None:
        self._commit(())

    def update_by_id(self, scene_id: str, **patch) -> bool:
        """Apply ``patch`` to one scene. Returns False if the id is unknown."""
        bad = set(patch) - _MUTABLE_FIELDS
        if bad:
            raise ValueError(f"Cannot patch scene fields: {', '.join(sorted(bad))}")
        if self.get(scene_id) is None:
            log.debug("Ignoring update for unknown scene %s", scene_id)
            return False
        self._commit(tuple(
            dataclasses.replace(s, **patch) if s.id == scene_id else s
            for s in self._scenes
        ))
        return True

    def update_where(self, predicate: Callable[[Scene], bool], **patch) -> int:
        """Apply ``patch`` to every matching scene in one change. Returns the count."""
        bad = set(patch) - _MUTABLE_FIELDS
        if bad:
            raise ValueError(f"Cannot patch scene fields: {', '.join(sorted(bad))}")
        count = 0
        updated: list[Scene] = []
        for s in self._scenes:
            if predicate(s):
                updated.append(dataclasses.replace(s, **patch))
                count += 1
            else:
                updated.append(s)
        if count:
            self._commit(tuple(updated))
        return count

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _commit(self, scenes: tuple[Scene, ...]) -> None:
        self._scenes = scenes
        for listener in list(self._listeners):
            try:
                listener(scenes)
            except Exception:
                log.exception("Scene store listener failed")

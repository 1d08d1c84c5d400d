"""
OrderStatusPipeline -- ordered order-status stages with a reserved terminal.

Responsibility:
    Holds the user-configurable sequence of order statuses ("Picking",
    "Packing", ...) that orders move through, plus one universal stage,
    ``ReservedStage.READY_TO_SHIP``, that always exists and is always last.

Architecture position:
    Kernel > Domain -- pure value logic, zero I/O.  Persisting the custom
    stage names is the caller's concern.

Invariants enforced:
    - The reserved stage is present exactly once and is the final stage.
    - It cannot be removed, renamed, reordered or shadowed by a custom
      stage of the same name (ReservedStageError).
    - Custom stage names are unique, compared case-insensitively.

Failure modes:
    - ReservedStageError on any attempt to touch the reserved stage.
    - StageNotFoundError when removing/renaming an unknown stage.
    - DuplicateStageError when adding or renaming onto an existing name.
    - ValueError on blank names or a reorder list that is not a
      permutation of the custom stages.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from inventory_kernel.exceptions import (
    DuplicateStageError,
    ReservedStageError,
    StageNotFoundError,
)


class ReservedStage(str, Enum):
    """Stages the system owns.  Closed set; not user data."""

    READY_TO_SHIP = "Ready to Ship"


@dataclass(frozen=True)
class PipelineStage:
    """One stage with its zero-based position in the pipeline."""

    name: str
    position: int
    reserved: bool = False


def _key(name: str) -> str:
    return name.strip().casefold()


_RESERVED_KEYS = {_key(stage.value): stage for stage in ReservedStage}


class OrderStatusPipeline:
    """Mutable, ordered collection of custom stages ending in READY_TO_SHIP."""

    def __init__(self, stages: Iterable[str] = ()):
        self._custom: list[str] = []
        for name in stages:
            self.add_stage(name)

    def _clean(self, name: str, action: str) -> str:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Stage name must be a non-empty string")
        if _key(name) in _RESERVED_KEYS:
            raise ReservedStageError(ReservedStage.READY_TO_SHIP.value, action)
        return name.strip()

    def _index(self, name: str) -> int:
        wanted = _key(name)
        for i, existing in enumerate(self._custom):
            if _key(existing) == wanted:
                return i
        raise StageNotFoundError(name)

    def add_stage(self, name: str, position: int | None = None) -> PipelineStage:
        """Insert a custom stage; default is just before the reserved stage."""
        cleaned = self._clean(name, "shadowed")
        if any(_key(existing) == _key(cleaned) for existing in self._custom):
            raise DuplicateStageError(cleaned)
        if position is None or position > len(self._custom):
            position = len(self._custom)
        if position < 0:
            raise ValueError(f"Stage position must be >= 0, got {position}")
        self._custom.insert(position, cleaned)
        return PipelineStage(cleaned, position)

    def remove_stage(self, name: str) -> None:
        self._clean(name, "removed")
        del self._custom[self._index(name)]

    def rename_stage(self, old: str, new: str) -> None:
        self._clean(old, "renamed")
        cleaned = self._clean(new, "shadowed")
        index = self._index(old)
        for i, existing in enumerate(self._custom):
            if i != index and _key(existing) == _key(cleaned):
                raise DuplicateStageError(cleaned)
        self._custom[index] = cleaned

    def reorder(self, names: Iterable[str]) -> None:
        """Replace the custom stage order.

        ``names`` must list every custom stage exactly once.  The reserved
        stage may not appear; its position is fixed.
        """
        requested = list(names)
        for name in requested:
            self._clean(name, "reordered")
        resolved = [self._custom[self._index(name)] for name in requested]
        if sorted(map(_key, resolved)) != sorted(map(_key, self._custom)):
            raise ValueError("reorder() requires each custom stage exactly once")
        self._custom = resolved

    @property
    def stages(self) -> tuple[PipelineStage, ...]:
        custom = tuple(
            PipelineStage(name, i) for i, name in enumerate(self._custom)
        )
        terminal = PipelineStage(
            ReservedStage.READY_TO_SHIP.value, len(custom), reserved=True
        )
        return custom + (terminal,)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)

    def is_reserved(self, name: str) -> bool:
        return _key(name) in _RESERVED_KEYS

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return any(_key(n) == _key(name) for n in self.names)

    def __len__(self) -> int:
        return len(self._custom) + 1

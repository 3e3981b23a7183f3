from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping

from ..core.exceptions import StagingError
from .collection import StagedCollection


@dataclass(frozen=True)
class PendingChangeSet:
    """One ``StagedCollection`` per child-entity slice of a detail page.

    Sections only ever swap their own slice through :meth:`replace`, which
    hands back a new change set so owners can detect changes by identity.
    """

    slices: Mapping[str, StagedCollection]

    @classmethod
    def empty(cls, names: Iterable[str]) -> "PendingChangeSet":
        return cls(MappingProxyType({name: StagedCollection() for name in names}))

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self.slices)

    def slice(self, name: str) -> StagedCollection:
        try:
            return self.slices[name]
        except KeyError:
            raise StagingError(f"Unknown section {name!r}") from None

    def replace(self, name: str, collection: StagedCollection) -> "PendingChangeSet":
        if self.slice(name) is collection:
            return self
        return PendingChangeSet(MappingProxyType({**self.slices, name: collection}))

    def has_changes(self) -> bool:
        return any(not c.is_empty() for c in self.slices.values())

    def count(self) -> int:
        return sum(c.count() for c in self.slices.values())

    def non_empty(self) -> list[str]:
        return [name for name, c in self.slices.items() if not c.is_empty()]

    def cleared(self) -> "PendingChangeSet":
        return PendingChangeSet.empty(self.names)

    def as_dict(self) -> dict:
        return {name: c.as_dict() for name, c in self.slices.items()}

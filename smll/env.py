"""Environment (ρ) and store (σ) for the interpreter.

Both are persistent maps: `extend` never touches the receiver, it returns a
new map with the extra binding. A declaration's bindings are therefore only
visible to commands that receive the extended environment, and any earlier
(ρ, σ) snapshot stays valid after later extensions.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Dict, Generic, Iterator, Mapping, Optional, TypeVar, Union

from .values import Value

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class Undefined(KeyError):
    """Lookup of a key the map does not bind."""


@dataclass(frozen=True)
class Location:
    """Opaque storage cell token; only identity (by index) matters."""

    index: int

    def __str__(self) -> str:  # pragma: no cover - debugging helper
        return f"loc{self.index}"


class PersistentMap(Mapping[K, V], Generic[K, V]):
    """Immutable mapping extended by copy."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[Mapping[K, V]] = None) -> None:
        self._entries: Dict[K, V] = dict(entries or {})

    def __getitem__(self, key: K) -> V:
        try:
            return self._entries[key]
        except KeyError:
            raise Undefined(key) from None

    def __iter__(self) -> Iterator[K]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._entries!r})"

    def extend(self, key: K, value: V):
        entries = dict(self._entries)
        entries[key] = value
        return type(self)(entries)


Binding = Union[Location, Value]


class Environment(PersistentMap[str, Binding]):
    """ρ: identifier -> Location (variable) or value (constant)."""


class Store(PersistentMap[Location, Value]):
    """σ: Location -> current value."""


EMPTY_ENVIRONMENT = Environment()
EMPTY_STORE = Store()


def is_location(binding: Binding) -> bool:
    return isinstance(binding, Location)


class LocationAllocator:
    """Hands out fresh locations; one allocator per run, never reused."""

    def __init__(self) -> None:
        self._counter = itertools.count()

    def fresh(self) -> Location:
        location = Location(next(self._counter))
        logger.debug("allocated %s", location)
        return location

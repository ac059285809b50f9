from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator, Sequence, overload

from .. import hints
from .._exceptions import InvalidOrdering

if TYPE_CHECKING:
    from ._factor_graph import FactorGraph


class Ordering(Sequence[hints.Key]):
    """Elimination ordering: the sequence of variables to eliminate, one per step.

    May cover a strict subset of the variables in a graph, in which case elimination
    is partial. Duplicate entries are rejected."""

    def __init__(self, keys: Iterable[hints.Key] = ()) -> None:
        self._keys: tuple[hints.Key, ...] = tuple(keys)

        seen = set()
        for key in self._keys:
            if key in seen:
                raise InvalidOrdering(
                    f"Ordering contains variable {key} more than once: {self._keys}"
                )
            seen.add(key)

    @staticmethod
    def natural(graph: FactorGraph) -> Ordering:
        """Eliminate every variable in a graph, in ascending key order."""
        return Ordering(graph.keys())

    def invert(self) -> dict[hints.Key, int]:
        """Map from each variable to its elimination position."""
        return {key: i for i, key in enumerate(self._keys)}

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[hints.Key]:
        return iter(self._keys)

    @overload
    def __getitem__(self, i: int) -> hints.Key:
        ...

    @overload
    def __getitem__(self, i: slice) -> Ordering:
        ...

    def __getitem__(self, i):
        if isinstance(i, slice):
            return Ordering(self._keys[i])
        return self._keys[i]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Ordering):
            return self._keys == other._keys
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._keys)

    def __repr__(self) -> str:
        return f"Ordering({list(self._keys)})"

from __future__ import annotations

from typing import Iterable, Iterator, Optional

from .. import hints
from ._factor_base import FactorBase


class VariableIndex:
    """Adjacency from each variable to the (ascending) indices of the factors that
    involve it. Lets elimination tree construction visit the factors of a variable
    without rescanning the whole graph."""

    def __init__(self, factors: Iterable[Optional[FactorBase]] = ()) -> None:
        self._factors_from_key: dict[hints.Key, list[int]] = {}
        self._n_factors = 0
        self._n_entries = 0
        self.augment(factors)

    def augment(self, factors: Iterable[Optional[FactorBase]]) -> None:
        """Index additional factors, which are assumed to be appended to the end of
        the graph that this index was built from."""
        for factor in factors:
            i = self._n_factors
            self._n_factors += 1
            if factor is None:
                continue
            for key in factor.keys:
                self._factors_from_key.setdefault(key, []).append(i)
                self._n_entries += 1

    def __getitem__(self, key: hints.Key) -> list[int]:
        """Indices of factors involving `key`. Raises `KeyError` for a variable that
        is not involved in any factor."""
        try:
            return self._factors_from_key[key]
        except KeyError as e:
            raise KeyError(
                f"Requested variable {key} is not in this VariableIndex."
            ) from e

    def __contains__(self, key: object) -> bool:
        return key in self._factors_from_key

    def __len__(self) -> int:
        """Number of variables."""
        return len(self._factors_from_key)

    def __iter__(self) -> Iterator[hints.Key]:
        return iter(self._factors_from_key)

    def keys(self) -> list[hints.Key]:
        return sorted(self._factors_from_key.keys())

    @property
    def n_factors(self) -> int:
        """Number of factor slots indexed, including `None` slots."""
        return self._n_factors

    @property
    def n_entries(self) -> int:
        """Total number of variable/factor incidences."""
        return self._n_entries

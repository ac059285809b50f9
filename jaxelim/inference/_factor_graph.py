from __future__ import annotations

from typing import Generic, Iterable, Iterator, Optional, TypeVar, Union, overload

from .. import hints, utils
from ._factor_base import FactorBase

FactorType = TypeVar("FactorType", bound=FactorBase)


class FactorGraph(Generic[FactorType]):
    """An ordered collection of factors. Slots can hold `None`, which is skipped by
    the variable index but kept so that factor indices stay stable."""

    def __init__(self, factors: Iterable[Optional[FactorType]] = ()) -> None:
        self.factors: list[Optional[FactorType]] = list(factors)

    def push_back(
        self, factor: Union[Optional[FactorType], Iterable[Optional[FactorType]]]
    ) -> None:
        """Append a single factor, or every factor in a list, tuple, or graph."""
        if isinstance(factor, (list, tuple, FactorGraph)):
            self.factors.extend(factor)
        else:
            self.factors.append(factor)

    def __len__(self) -> int:
        return len(self.factors)

    def __iter__(self) -> Iterator[Optional[FactorType]]:
        return iter(self.factors)

    @overload
    def __getitem__(self, i: int) -> Optional[FactorType]:
        ...

    @overload
    def __getitem__(self, i: slice) -> list[Optional[FactorType]]:
        ...

    def __getitem__(self, i):
        return self.factors[i]

    def keys(self) -> list[hints.Key]:
        """Sorted list of all variables involved in the graph."""
        out = set()
        for factor in self.factors:
            if factor is not None:
                out.update(factor.keys)
        return sorted(out)

    def equals(self, other: FactorGraph, tol: float = 1e-9) -> bool:
        if len(self.factors) != len(other.factors):
            return False
        for f1, f2 in zip(self.factors, other.factors):
            if f1 is None or f2 is None:
                if f1 is not f2:
                    return False
            elif not f1.equals(f2, tol):
                return False
        return True

    def format(
        self,
        name: str = "",
        key_formatter: hints.KeyFormatter = utils.default_key_formatter,
    ) -> list[str]:
        lines = [f"{name}: size: {len(self.factors)}"]
        for i, factor in enumerate(self.factors):
            if factor is None:
                lines.append(f"  Factor {i}: null factor")
            else:
                lines.extend(factor.format(f"  Factor {i}: ", key_formatter))
        return lines

    def print(
        self,
        name: str = "",
        key_formatter: hints.KeyFormatter = utils.default_key_formatter,
        sink: hints.Sink = print,
    ) -> None:
        utils.emit_lines(self.format(name, key_formatter), sink=sink)

    def __repr__(self) -> str:
        return "\n".join(self.format(type(self).__name__))


class BayesNet(FactorGraph[FactorType]):
    """Conditionals produced by elimination, in elimination order."""

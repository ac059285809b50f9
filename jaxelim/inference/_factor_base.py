from __future__ import annotations

import abc

from overrides import EnforceOverrides

from .. import hints, utils


class FactorBase(abc.ABC, EnforceOverrides):
    """Interface shared by factors and conditionals that can be placed in a factor
    graph and eliminated.

    Factors are treated as immutable once they are placed in a graph; elimination only
    ever moves references to them around.
    """

    keys: tuple[hints.Key, ...]
    """Variables involved in this factor. Usually a static dataclass field in
    subclasses."""

    @abc.abstractmethod
    def equals(self, other: FactorBase, tol: float = 1e-9) -> bool:
        """Approximate equality."""

    def format(
        self,
        prefix: str = "",
        key_formatter: hints.KeyFormatter = utils.default_key_formatter,
    ) -> list[str]:
        """Human-readable description, one entry per line."""
        keys = " ".join(key_formatter(k) for k in self.keys)
        return [f"{prefix}{type(self).__name__}({keys})"]

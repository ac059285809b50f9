from __future__ import annotations

import jax
import jax.scipy.linalg
import jax_dataclasses as jdc
from jax import numpy as jnp
from overrides import overrides

from .. import hints, utils
from ..base import VerticalBlockMatrix
from ..inference import FactorBase
from ._jacobian_factor import Values


@jdc.pytree_dataclass
class GaussianConditional(FactorBase):
    """Gaussian density on frontal variables given parents, in square-root form:

        R x_frontal + S_1 x_parent_1 + ... + S_k x_parent_k = d

    `R` is upper triangular.
    """

    keys: jdc.Static[tuple[hints.Key, ...]]
    """Frontal variables followed by parent variables."""

    Ab: VerticalBlockMatrix
    """Augmented matrix `[R | S_1 | ... | S_k | d]`. The `R` columns span the first
    `n_frontals` blocks."""

    n_frontals: jdc.Static[int]

    def frontals(self) -> tuple[hints.Key, ...]:
        return self.keys[: self.n_frontals]

    def parents(self) -> tuple[hints.Key, ...]:
        return self.keys[self.n_frontals :]

    def get_R(self) -> jax.Array:
        return self.Ab.range(0, self.n_frontals)

    def get_S(self, key: hints.Key) -> jax.Array:
        i = self.keys.index(key)
        assert i >= self.n_frontals, f"{key} is not a parent of this conditional."
        return self.Ab.block(i)

    def get_d(self) -> jax.Array:
        return self.Ab.block(len(self.keys))[:, 0]

    def solve(self, parent_values: Values) -> jax.Array:
        """Back-substitute for the frontal variables, given values for the parents.
        Returns the frontal variables stacked into a single vector."""
        rhs = self.get_d()
        for key in self.parents():
            rhs = rhs - self.get_S(key) @ jnp.asarray(parent_values[key])
        return jax.scipy.linalg.solve_triangular(self.get_R(), rhs, lower=False)

    @overrides
    def equals(self, other: FactorBase, tol: float = 1e-9) -> bool:
        if not isinstance(other, GaussianConditional):
            return False
        if self.keys != other.keys or self.n_frontals != other.n_frontals:
            return False

        return utils.equal_with_abs_tol(self.Ab.full(), other.Ab.full(), tol)

    @overrides
    def format(
        self,
        prefix: str = "",
        key_formatter: hints.KeyFormatter = utils.default_key_formatter,
    ) -> list[str]:
        frontals = " ".join(key_formatter(k) for k in self.frontals())
        parents = " ".join(key_formatter(k) for k in self.parents())
        lines = [f"{prefix}p({frontals} | {parents})"]
        lines.append(f"{prefix}  R = {self.get_R()}")
        for key in self.parents():
            lines.append(f"{prefix}  S[{key_formatter(key)}] = {self.get_S(key)}")
        lines.append(f"{prefix}  d = {self.get_d()}")
        return lines

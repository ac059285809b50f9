from __future__ import annotations

from typing import Mapping, Sequence, Union

import jax
import jax_dataclasses as jdc
from jax import numpy as jnp
from overrides import overrides

from .. import hints, utils
from ..base import VerticalBlockMatrix
from ..inference import FactorBase
from ._vector_values import VectorValues

Values = Union[VectorValues, Mapping[hints.Key, hints.Array]]


@jdc.pytree_dataclass
class JacobianFactor(FactorBase):
    """Linear least-squares factor `0.5 * ||A_1 x_1 + ... + A_n x_n - b||^2`.

    Blocks are stored side by side as `[A_1 | ... | A_n | b]` in a single
    `VerticalBlockMatrix`.
    """

    keys: jdc.Static[tuple[hints.Key, ...]]
    """Variables involved in this factor. 1-to-1, in-order correspondence with the
    leading blocks of `Ab`."""

    Ab: VerticalBlockMatrix
    """Augmented matrix. Has one block per key, followed by a 1-wide block for `b`."""

    @staticmethod
    def make(
        terms: Sequence[tuple[hints.Key, hints.Array]], b: hints.Array
    ) -> JacobianFactor:
        """Create a factor from a sequence of `(key, A)` pairs and a right-hand side
        vector."""
        b = jnp.atleast_1d(jnp.asarray(b))
        assert b.ndim == 1, "Right-hand side should be a vector!"
        rows = b.shape[0]

        keys = tuple(key for key, _ in terms)
        assert len(set(keys)) == len(keys), f"Duplicate keys in factor: {keys}"

        blocks = [jnp.atleast_2d(jnp.asarray(A)) for _, A in terms]
        for key, A in zip(keys, blocks):
            assert A.shape[0] == rows, (
                f"Block for variable {key} has {A.shape[0]} rows, but b has {rows}."
            )

        Ab = VerticalBlockMatrix.make([A.shape[1] for A in blocks], rows, True)
        for i, A in enumerate(blocks):
            Ab = Ab.with_block(i, A)
        Ab = Ab.with_block(len(blocks), b[:, None])
        return JacobianFactor(keys=keys, Ab=Ab)

    def rows(self) -> int:
        return self.Ab.rows()

    def dims(self) -> list[int]:
        """Dimension of each variable, in key order."""
        return [self.Ab.block_dim(i) for i in range(len(self.keys))]

    def get_A(self, key: hints.Key) -> jax.Array:
        return self.Ab.block(self.keys.index(key))

    def get_b(self) -> jax.Array:
        return self.Ab.block(len(self.keys))[:, 0]

    def unweighted_error(self, x: Values) -> jax.Array:
        """Residual vector `Ax - b`."""
        residual = -self.get_b()
        for i, key in enumerate(self.keys):
            residual = residual + self.Ab.block(i) @ jnp.asarray(x[key])
        return residual

    def error(self, x: Values) -> float:
        return float(0.5 * jnp.sum(self.unweighted_error(x) ** 2))

    @overrides
    def equals(self, other: FactorBase, tol: float = 1e-9) -> bool:
        if not isinstance(other, JacobianFactor):
            return False
        if self.keys != other.keys or self.dims() != other.dims():
            return False

        return utils.equal_with_abs_tol(self.Ab.full(), other.Ab.full(), tol)

    @overrides
    def format(
        self,
        prefix: str = "",
        key_formatter: hints.KeyFormatter = utils.default_key_formatter,
    ) -> list[str]:
        lines = [f"{prefix}JacobianFactor ({self.rows()} rows)"]
        for i, key in enumerate(self.keys):
            lines.append(f"{prefix}  A[{key_formatter(key)}] = {self.Ab.block(i)}")
        lines.append(f"{prefix}  b = {self.get_b()}")
        return lines

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Optional

import jax
from jax import numpy as jnp
from loguru import logger

from .. import hints, utils
from .._exceptions import InvalidOrdering
from ..inference import EliminationTree, FactorGraph, Ordering, VariableIndex
from ._jacobian_factor import JacobianFactor, Values
from ._vector_values import VectorValues

if TYPE_CHECKING:
    from ._elimination import EliminationProcedureBase
    from ._gaussian_bayes_net import GaussianBayesNet


class GaussianFactorGraph(FactorGraph[JacobianFactor]):
    """Linear factor graph, made of `JacobianFactor`s."""

    def eliminate_sequential(
        self,
        ordering: Optional[Iterable[hints.Key]] = None,
        procedure: Optional[EliminationProcedureBase] = None,
        variable_index: Optional[VariableIndex] = None,
    ) -> tuple[GaussianBayesNet, GaussianFactorGraph]:
        """Eliminate the variables in `ordering` (default: all variables, in ascending
        order).

        For a partial ordering, the returned factor graph holds the marginal factors on
        the variables that were not eliminated."""
        from ._elimination import eliminate_qr

        if ordering is None:
            ordering = Ordering.natural(self)
        if procedure is None:
            procedure = eliminate_qr
        if not isinstance(ordering, Ordering):
            ordering = Ordering(ordering)

        logger.info(
            "Eliminating {} variables from a graph with {} factors",
            len(ordering),
            len(self),
        )
        with utils.stopwatch("eliminate_sequential"):
            tree = EliminationTree(self, ordering, variable_index)
            bayes_net, remaining = tree.eliminate(
                procedure, keep_root_separators=True
            )
        return bayes_net, remaining  # type: ignore

    def optimize(self, ordering: Optional[Iterable[hints.Key]] = None) -> VectorValues:
        """Solve the least-squares problem by elimination and back-substitution.
        `ordering` must cover every variable in the graph."""
        bayes_net, remaining = self.eliminate_sequential(ordering)
        for factor in remaining:
            if factor is not None and len(factor.keys) > 0:
                raise InvalidOrdering(
                    f"Ordering does not eliminate variables {factor.keys}; a full"
                    " ordering is required to optimize."
                )
        return bayes_net.optimize()

    def dims(self) -> dict[hints.Key, int]:
        """Dimension of each variable."""
        out: dict[hints.Key, int] = {}
        for factor in self.factors:
            if factor is not None:
                out.update(zip(factor.keys, factor.dims()))
        return out

    def dense_jacobian(
        self, ordering: Optional[Iterable[hints.Key]] = None
    ) -> tuple[jax.Array, jax.Array]:
        """Stack all factors into a dense `(A, b)` pair. Columns of `A` follow
        `ordering` (default: ascending keys)."""
        keys = list(self.keys() if ordering is None else ordering)
        dim_from_key = self.dims()

        A_rows = []
        b_rows = []
        for factor in self.factors:
            if factor is None:
                continue
            A_rows.append(
                jnp.concatenate(
                    [jnp.zeros((factor.rows(), 0))]
                    + [
                        factor.get_A(key)
                        if key in factor.keys
                        else jnp.zeros((factor.rows(), dim_from_key[key]))
                        for key in keys
                    ],
                    axis=1,
                )
            )
            b_rows.append(factor.get_b())
        if len(A_rows) == 0:
            return jnp.zeros((0, 0)), jnp.zeros((0,))
        return jnp.concatenate(A_rows, axis=0), jnp.concatenate(b_rows, axis=0)

    def error(self, x: Values) -> float:
        return sum(factor.error(x) for factor in self.factors if factor is not None)

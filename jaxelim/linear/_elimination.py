from __future__ import annotations

import abc
from typing import ClassVar, Optional, Sequence

import jax_dataclasses as jdc
from jax import numpy as jnp
from overrides import EnforceOverrides, overrides

from .. import hints
from .._exceptions import EliminationFailure
from ..base import VerticalBlockMatrix
from ..inference import BayesNet, FactorBase, FactorGraph
from ._gaussian_bayes_net import GaussianBayesNet
from ._gaussian_conditional import GaussianConditional
from ._gaussian_factor_graph import GaussianFactorGraph
from ._jacobian_factor import JacobianFactor


class EliminationProcedureBase(abc.ABC, EnforceOverrides):
    """Dense elimination step, for use with `EliminationTree.eliminate()`.

    Subclasses can set `bayes_net_type` and `factor_graph_type` class attributes to
    choose the containers that `EliminationTree.eliminate()` returns.
    """

    def __call__(
        self, factors: Sequence[Optional[FactorBase]], keys: Sequence[hints.Key]
    ) -> tuple[FactorBase, FactorBase]:
        return self.eliminate(factors, keys)

    @abc.abstractmethod
    def eliminate(
        self, factors: Sequence[Optional[FactorBase]], keys: Sequence[hints.Key]
    ) -> tuple[FactorBase, FactorBase]:
        """Eliminate `keys` from a set of factors.

        Returns:
            Tuple of the conditional on `keys` given the separator variables, and the
            separator factor on the remaining variables.
        """


@jdc.pytree_dataclass
class EliminateQR(EliminationProcedureBase):
    """Eliminate Jacobian factors with a dense QR factorization.

    The gathered factors are stacked into one augmented matrix with columns ordered
    as `[frontal variables | separator variables (ascending) | b]`. The first rows of
    the triangular factor form the conditional; the remaining rows, restricted to the
    separator and `b` columns, form the separator factor.
    """

    rank_tolerance: float = 1e-9
    """Elimination fails if the magnitude of any diagonal entry of `R` is at or below
    this value."""

    bayes_net_type: ClassVar[type[BayesNet]] = GaussianBayesNet
    """Container for conditionals produced by this procedure."""
    factor_graph_type: ClassVar[type[FactorGraph]] = GaussianFactorGraph
    """Container for factors left over after elimination."""

    @overrides
    def eliminate(
        self, factors: Sequence[Optional[FactorBase]], keys: Sequence[hints.Key]
    ) -> tuple[GaussianConditional, JacobianFactor]:
        jacobians: list[JacobianFactor] = []
        for factor in factors:
            if factor is None:
                continue
            assert isinstance(
                factor, JacobianFactor
            ), f"QR elimination requires JacobianFactor inputs, got {type(factor)}."
            jacobians.append(factor)

        # Determine variable dimensions, and check that factors agree on them.
        dim_from_key: dict[hints.Key, int] = {}
        for factor in jacobians:
            for key, dim in zip(factor.keys, factor.dims()):
                if dim_from_key.setdefault(key, dim) != dim:
                    raise EliminationFailure(
                        f"Factors disagree on the dimension of variable {key}:"
                        f" {dim_from_key[key]} and {dim}."
                    )

        frontal_keys = tuple(keys)
        for key in frontal_keys:
            if key not in dim_from_key:
                raise EliminationFailure(
                    f"Requested to eliminate variable {key}, which is not involved in"
                    " any of the given factors."
                )
        separator_keys = tuple(sorted(k for k in dim_from_key if k not in keys))
        all_keys = frontal_keys + separator_keys

        # Stack factors into the augmented matrix.
        row_blocks = []
        for factor in jacobians:
            row_blocks.append(
                jnp.concatenate(
                    [
                        factor.get_A(key)
                        if key in factor.keys
                        else jnp.zeros((factor.rows(), dim_from_key[key]))
                        for key in all_keys
                    ]
                    + [factor.get_b()[:, None]],
                    axis=1,
                )
            )
        if len(row_blocks) == 0:
            raise EliminationFailure(f"No factors given to eliminate {frontal_keys}.")
        stacked = jnp.concatenate(row_blocks, axis=0)

        # Factorize. Only `R` is needed; it inherits the block layout of the stacked
        # system.
        R = jnp.linalg.qr(stacked, mode="r")
        Ab = VerticalBlockMatrix.make(
            [dim_from_key[key] for key in all_keys], rows=0, append_one_dimension=True
        )
        Ab = jdc.replace(Ab, matrix=R, row_end=R.shape[0])
        Ab.assert_invariants()

        frontal_dim = sum(dim_from_key[key] for key in frontal_keys)
        if R.shape[0] < frontal_dim or (
            frontal_dim > 0
            and float(jnp.min(jnp.abs(jnp.diag(R[:frontal_dim, :frontal_dim]))))
            <= self.rank_tolerance
        ):
            raise EliminationFailure(
                f"Linear system is rank deficient when eliminating {frontal_keys}."
            )

        conditional = GaussianConditional(
            keys=all_keys,
            Ab=Ab.with_active_view(row_end=frontal_dim),
            n_frontals=len(frontal_keys),
        )

        # Remaining rows, over the separator and `b` columns.
        remaining_view = Ab.with_active_view(
            row_start=frontal_dim, block_start=len(frontal_keys)
        )
        separator_Ab = VerticalBlockMatrix.like_active_view_of(remaining_view)
        for i in range(remaining_view.n_blocks()):
            separator_Ab = separator_Ab.with_block(i, remaining_view.block(i))
        separator = JacobianFactor(keys=separator_keys, Ab=separator_Ab)

        return conditional, separator


eliminate_qr = EliminateQR()
"""Default QR elimination procedure."""

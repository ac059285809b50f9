from __future__ import annotations

import jax
from jax import numpy as jnp

from .. import hints
from ..inference import BayesNet
from ._gaussian_conditional import GaussianConditional
from ._vector_values import VectorValues


class GaussianBayesNet(BayesNet[GaussianConditional]):
    """Gaussian conditionals, in elimination order."""

    def optimize(self) -> VectorValues:
        """Solve for the most likely assignment by back-substitution, visiting
        conditionals in reverse elimination order."""
        solution: dict[hints.Key, jax.Array] = {}
        for conditional in reversed(self.factors):
            assert conditional is not None
            x_frontal = conditional.solve(solution)

            # Split stacked frontal values per variable.
            start = 0
            for i, key in enumerate(conditional.frontals()):
                dim = conditional.Ab.block_dim(i)
                solution[key] = x_frontal[start : start + dim]
                start += dim
            assert start == x_frontal.shape[0]

        return VectorValues.from_dict(solution)

    def determinant(self) -> float:
        """Determinant of the square-root information matrix `R`, up to sign."""
        log_det = 0.0
        for conditional in self.factors:
            assert conditional is not None
            log_det += float(jnp.sum(jnp.log(jnp.abs(jnp.diag(conditional.get_R())))))
        return float(jnp.exp(log_det))

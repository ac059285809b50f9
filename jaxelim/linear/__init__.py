from ._elimination import EliminateQR, EliminationProcedureBase, eliminate_qr
from ._gaussian_bayes_net import GaussianBayesNet
from ._gaussian_conditional import GaussianConditional
from ._gaussian_factor_graph import GaussianFactorGraph
from ._jacobian_factor import JacobianFactor
from ._vector_values import VectorValues

__all__ = [
    "EliminateQR",
    "EliminationProcedureBase",
    "GaussianBayesNet",
    "GaussianConditional",
    "GaussianFactorGraph",
    "JacobianFactor",
    "VectorValues",
    "eliminate_qr",
]

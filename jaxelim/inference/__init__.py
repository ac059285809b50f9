from ._elimination_tree import EliminationProcedure, EliminationTree, Node
from ._factor_base import FactorBase
from ._factor_graph import BayesNet, FactorGraph
from ._ordering import Ordering
from ._variable_index import VariableIndex

__all__ = [
    "BayesNet",
    "EliminationProcedure",
    "EliminationTree",
    "FactorBase",
    "FactorGraph",
    "Node",
    "Ordering",
    "VariableIndex",
]

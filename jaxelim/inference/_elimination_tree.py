from __future__ import annotations

import dataclasses
from typing import (
    Any,
    Callable,
    Generic,
    Iterable,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from loguru import logger

from .. import hints, utils
from .._exceptions import InvalidOrdering, InvariantViolation
from ._factor_base import FactorBase
from ._factor_graph import BayesNet, FactorGraph
from ._ordering import Ordering
from ._variable_index import VariableIndex

FactorType = TypeVar("FactorType", bound=FactorBase)
ConditionalType = TypeVar("ConditionalType", bound=FactorBase)

EliminationProcedure = Callable[
    [Sequence[Any], Sequence[hints.Key]], Tuple[Any, Optional[Any]]
]
"""Dense elimination step. Called with the gathered factors of a node and a
single-element list containing the variable to eliminate; returns a
`(conditional, separator factor)` pair."""


@dataclasses.dataclass(frozen=True)
class Node:
    """Elimination tree node. Each node eliminates exactly one variable."""

    key: hints.Key
    """Variable eliminated at this node."""

    factors: tuple[Optional[FactorBase], ...]
    """Factors whose first variable in the ordering is `key`. These are references
    into the original graph, and are never copied."""

    children: tuple[int, ...]
    """Indices of child nodes in the owning tree's node list. Children are eliminated
    before their parent."""


def _find_root(parents: list[Optional[int]], j: int) -> int:
    """Walk parent links up to the root of the subtree containing column `j`."""
    while parents[j] is not None:
        j = parents[j]  # type: ignore
    return j


class EliminationTree(Generic[FactorType]):
    """Elimination tree over the variables of a factor graph.

    Built in a single pass over an elimination ordering: a variable's ancestors in
    the tree are exactly the variables that its elimination step transitively
    depends on. When the graph is disconnected (or the ordering is partial), the
    result is a forest with several roots.

    Nodes are stored in an arena (`self.nodes`), and refer to their children by
    index. Node `j` eliminates `ordering[j]`.
    """

    nodes: list[Node]
    roots: list[int]
    """Indices of root nodes, in ordering order."""
    remaining_factors: list[Optional[FactorType]]
    """Factors that were not assigned to any node, because none of their variables
    appear in the ordering."""

    def __init__(
        self,
        graph: FactorGraph[FactorType],
        ordering: Iterable[hints.Key],
        variable_index: Optional[VariableIndex] = None,
    ) -> None:
        if variable_index is None:
            # Build the variable index first, then move the resulting tree into
            # `self`.
            temp = EliminationTree(graph, ordering, VariableIndex(graph))
            self.nodes = []
            self.roots = []
            self.remaining_factors = []
            self.swap(temp)
            return

        if not isinstance(ordering, Ordering):
            ordering = Ordering(ordering)

        # Number of factors and variables. For partial elimination, `n` can be smaller
        # than the number of variables in the graph.
        m = len(graph)
        n = len(ordering)

        # `parents` is an array-backed union-find with no path compression.
        parents: list[Optional[int]] = [None] * n
        node_factors: list[list[Optional[FactorType]]] = [[] for _ in range(n)]
        node_children: list[list[int]] = [[] for _ in range(n)]
        prev_col: list[Optional[int]] = [None] * m
        factor_used = [False] * m

        for j in range(n):
            key = ordering[j]
            try:
                factor_indices = variable_index[key]
            except KeyError as e:
                raise InvalidOrdering(
                    "EliminationTree: given ordering contains variables that are not"
                    f" involved in the factor graph (variable {key})."
                ) from e

            for i in factor_indices:
                k = prev_col[i]
                if k is None:
                    # First variable of factor `i` in the ordering: the factor is
                    # eliminated here.
                    node_factors[j].append(graph[i])
                    factor_used[i] = True
                else:
                    # A variable of factor `i` was eliminated earlier; the subtree
                    # containing it now depends on the current variable.
                    r = _find_root(parents, k)
                    if r != j:
                        parents[r] = j
                        node_children[j].append(r)
                prev_col[i] = j

        if n > 0 and parents[-1] is not None:
            raise InvariantViolation(
                "The last-eliminated node of an elimination tree must be a root."
            )

        self.nodes = [
            Node(
                key=ordering[j],
                factors=tuple(node_factors[j]),
                children=tuple(node_children[j]),
            )
            for j in range(n)
        ]
        self.roots = [j for j in range(n) if parents[j] is None]
        self.remaining_factors = [graph[i] for i in range(m) if not factor_used[i]]

        logger.debug(
            "Built elimination tree with {} nodes, {} roots and {} remaining factors"
            " from {} factors",
            n,
            len(self.roots),
            len(self.remaining_factors),
            m,
        )

    # Elimination.

    def eliminate(
        self,
        procedure: EliminationProcedure,
        keep_root_separators: bool = False,
    ) -> tuple[BayesNet, FactorGraph]:
        """Eliminate every variable in the tree.

        Nodes are visited in post-order (children before parents, roots in order).
        Each node gathers its own factors followed by the separator factors returned
        by its children, and passes them to `procedure` along with its variable.
        Conditionals are appended to the output Bayes net in visitation order.

        Args:
            procedure: Dense elimination step.
            keep_root_separators: Separator factors produced at roots are discarded by
                default. If `True`, they are appended to the remaining factors
                instead; this is required to retain the marginal on variables that a
                partial ordering leaves uneliminated.

        Returns:
            Tuple of the Bayes net and remaining factor graph. Container types are
            taken from the `bayes_net_type` and `factor_graph_type` attributes of
            `procedure`, if present.
        """
        bayes_net: BayesNet = getattr(procedure, "bayes_net_type", BayesNet)()
        remaining: FactorGraph = getattr(procedure, "factor_graph_type", FactorGraph)()
        remaining.push_back(self.remaining_factors)

        # Iterative post-order traversal; long chains would exceed the recursion limit.
        for root in self.roots:
            child_results: dict[int, Optional[FactorBase]] = {}
            stack: list[tuple[int, bool]] = [(root, False)]
            while len(stack) > 0:
                j, children_done = stack.pop()
                node = self.nodes[j]
                if not children_done:
                    stack.append((j, True))
                    stack.extend((c, False) for c in reversed(node.children))
                    continue

                gathered_factors = list(node.factors)
                gathered_factors.extend(child_results.pop(c) for c in node.children)
                conditional, separator = procedure(gathered_factors, [node.key])
                bayes_net.push_back(conditional)
                child_results[j] = separator

            assert child_results.keys() == {root}
            if keep_root_separators:
                remaining.push_back(child_results[root])

        logger.debug(
            "Eliminated {} variables, with {} remaining factors",
            len(bayes_net),
            len(remaining),
        )
        return bayes_net, remaining

    # Copying, comparison, and printing.

    def copy(self) -> EliminationTree[FactorType]:
        """Duplicate the tree structure. Factors are shared with `self`, not cloned."""
        out = type(self).__new__(type(self))
        out.nodes = [
            Node(key=node.key, factors=node.factors, children=node.children)
            for node in self.nodes
        ]
        out.roots = list(self.roots)
        out.remaining_factors = list(self.remaining_factors)
        return out

    __copy__ = copy

    def swap(self, other: EliminationTree[FactorType]) -> None:
        """Exchange contents with another tree in constant time."""
        self.nodes, other.nodes = other.nodes, self.nodes
        self.roots, other.roots = other.roots, self.roots
        self.remaining_factors, other.remaining_factors = (
            other.remaining_factors,
            self.remaining_factors,
        )

    def _sorted_by_key(self, indices: Iterable[int]) -> list[int]:
        return sorted(indices, key=lambda j: self.nodes[j].key)

    def equals(self, other: EliminationTree, tol: float = 1e-9) -> bool:
        """Structural equality. Roots and children are compared in key order, so the
        order in which children were attached does not matter."""
        stack1 = self._sorted_by_key(self.roots)
        stack2 = other._sorted_by_key(other.roots)

        while len(stack1) > 0 and len(stack2) > 0:
            node1 = self.nodes[stack1.pop()]
            node2 = other.nodes[stack2.pop()]

            if node1.key != node2.key:
                return False
            if len(node1.factors) != len(node2.factors):
                return False
            for f1, f2 in zip(node1.factors, node2.factors):
                if f1 is not None and f2 is not None:
                    if not f1.equals(f2, tol):
                        return False
                elif f1 is not None or f2 is not None:
                    return False

            stack1.extend(self._sorted_by_key(node1.children))
            stack2.extend(other._sorted_by_key(node2.children))

        # If either stack is not empty, the number of nodes differed.
        return len(stack1) == 0 and len(stack2) == 0

    def n_nodes(self) -> int:
        return len(self.nodes)

    def node_for_key(self, key: hints.Key) -> Node:
        for node in self.nodes:
            if node.key == key:
                return node
        raise KeyError(key)

    def format(
        self,
        name: str = "",
        key_formatter: hints.KeyFormatter = utils.default_key_formatter,
    ) -> list[str]:
        """Depth-first printout of the forest. Children are indented below their
        parent."""
        lines: list[str] = []
        stack = [(j, name) for j in reversed(self.roots)]
        while len(stack) > 0:
            j, prefix = stack.pop()
            node = self.nodes[j]
            lines.append(f"{prefix}({key_formatter(node.key)})")
            for factor in node.factors:
                if factor is None:
                    lines.append(f"{prefix}| null factor")
                else:
                    lines.extend(factor.format(prefix + "| ", key_formatter))
            stack.extend((c, prefix + "| ") for c in reversed(node.children))
        return lines

    def print(
        self,
        name: str = "",
        key_formatter: hints.KeyFormatter = utils.default_key_formatter,
        sink: hints.Sink = print,
    ) -> None:
        utils.emit_lines(self.format(name, key_formatter), sink=sink)

    def __repr__(self) -> str:
        return "\n".join(self.format(type(self).__name__ + ": "))

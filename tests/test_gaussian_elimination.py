from typing import List

import numpy as onp
import pytest

import jaxelim
from jaxelim.base import VerticalBlockMatrix
from jaxelim.inference import EliminationTree, Ordering
from jaxelim.linear import (
    EliminateQR,
    GaussianBayesNet,
    GaussianConditional,
    GaussianFactorGraph,
    JacobianFactor,
    VectorValues,
    eliminate_qr,
)


def _random_chain_graph(
    num_vars: int = 4, dim: int = 2, seed: int = 0
) -> GaussianFactorGraph:
    """Prior on the first variable, odometry-like factors between neighbors, and one
    loop closure."""
    rng = onp.random.default_rng(seed)
    factors: List[JacobianFactor] = [
        JacobianFactor.make([(0, rng.normal(size=(dim, dim)))], rng.normal(size=dim))
    ]
    for i in range(num_vars - 1):
        factors.append(
            JacobianFactor.make(
                [
                    (i, rng.normal(size=(dim, dim))),
                    (i + 1, rng.normal(size=(dim, dim))),
                ],
                rng.normal(size=dim),
            )
        )
    factors.append(
        JacobianFactor.make(
            [
                (0, rng.normal(size=(dim, dim))),
                (num_vars - 1, rng.normal(size=(dim, dim))),
            ],
            rng.normal(size=dim),
        )
    )
    return GaussianFactorGraph(factors)


def _dense_solution(graph: GaussianFactorGraph) -> onp.ndarray:
    A, b = graph.dense_jacobian()
    x, *_ = onp.linalg.lstsq(onp.asarray(A), onp.asarray(b), rcond=None)
    return x


def test_jacobian_factor():
    factor = JacobianFactor.make(
        [(1, onp.eye(2)), (4, 2.0 * onp.eye(2))], onp.array([1.0, 2.0])
    )
    assert factor.keys == (1, 4)
    assert factor.dims() == [2, 2]
    assert factor.rows() == 2
    onp.testing.assert_allclose(factor.get_A(4), 2.0 * onp.eye(2))
    onp.testing.assert_allclose(factor.get_b(), [1.0, 2.0])

    x = {1: onp.array([1.0, 1.0]), 4: onp.array([0.0, 1.0])}
    onp.testing.assert_allclose(factor.unweighted_error(x), [0.0, 1.0])
    onp.testing.assert_allclose(factor.error(x), 0.5)

    assert factor.equals(factor)
    perturbed = JacobianFactor.make(
        [(1, onp.eye(2)), (4, 2.0 * onp.eye(2))], onp.array([1.0, 2.0 + 1e-6])
    )
    assert factor.equals(perturbed, tol=1e-5)
    assert not factor.equals(perturbed, tol=1e-8)
    assert not factor.equals(
        JacobianFactor.make([(1, onp.eye(2)), (5, 2.0 * onp.eye(2))], [1.0, 2.0])
    )


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_optimize_matches_dense_solve(seed: int):
    graph = _random_chain_graph(num_vars=5, dim=2, seed=seed)
    x_dense = _dense_solution(graph)

    for ordering in ([0, 1, 2, 3, 4], [4, 2, 0, 3, 1]):
        x = graph.optimize(ordering)
        assert isinstance(x, VectorValues)
        assert x.dims() == [2, 2, 2, 2, 2]
        onp.testing.assert_allclose(x.as_vector(), x_dense, rtol=1e-8, atol=1e-8)


def test_eliminate_sequential_types():
    graph = _random_chain_graph()
    bayes_net, remaining = graph.eliminate_sequential()
    assert isinstance(bayes_net, GaussianBayesNet)
    assert isinstance(remaining, GaussianFactorGraph)
    assert len(bayes_net) == 4
    assert [c.frontals() for c in bayes_net] == [(0,), (1,), (2,), (3,)]

    # Fully eliminated: only a constant factor is left over.
    assert len(remaining) == 1
    assert remaining[0].keys == ()


def test_tree_matches_direct_elimination():
    graph = _random_chain_graph(num_vars=3)
    # Factors: prior(0), f(0, 1), f(1, 2), loop(0, 2).
    prior, f01, f12, f02 = graph.factors

    bayes_net, _ = EliminationTree(graph, [0, 1, 2]).eliminate(eliminate_qr)

    c0, s0 = eliminate_qr([prior, f01, f02], [0])
    c1, s1 = eliminate_qr([f12, s0], [1])
    c2, _ = eliminate_qr([s1], [2])
    assert bayes_net.equals(GaussianBayesNet([c0, c1, c2]), tol=0.0)


def test_conditional_structure():
    graph = _random_chain_graph(num_vars=3)
    bayes_net, _ = graph.eliminate_sequential([0, 1, 2])

    c0 = bayes_net[0]
    assert c0.frontals() == (0,)
    assert c0.parents() == (1, 2)
    R = onp.asarray(c0.get_R())
    assert R.shape == (2, 2)
    onp.testing.assert_allclose(R, onp.triu(R))
    assert c0.get_S(1).shape == (2, 2)
    assert c0.get_d().shape == (2,)

    assert bayes_net[2].parents() == ()


def test_partial_elimination():
    graph = _random_chain_graph(num_vars=4)
    x_dense = _dense_solution(graph)

    bayes_net, remaining = graph.eliminate_sequential(Ordering([0, 1]))
    assert len(bayes_net) == 2
    assert set(remaining.keys()) == {2, 3}

    # The remaining factors are the marginal on variables 2 and 3.
    x_remaining = remaining.optimize([2, 3])
    onp.testing.assert_allclose(
        x_remaining.vector([2, 3]), x_dense[4:], rtol=1e-8, atol=1e-8
    )

    with pytest.raises(jaxelim.InvalidOrdering):
        graph.optimize([0, 1])


def test_disconnected_graph():
    rng = onp.random.default_rng(3)
    graph = GaussianFactorGraph(
        [
            JacobianFactor.make([(0, rng.normal(size=(2, 2)))], rng.normal(size=2)),
            JacobianFactor.make([(2, rng.normal(size=(3, 3)))], rng.normal(size=3)),
        ]
    )
    x = graph.optimize()

    # Variable 1 is unused, and held as a zero-length placeholder.
    assert x.dims() == [2, 0, 3]
    onp.testing.assert_allclose(
        x.vector([0, 2]), _dense_solution(graph), rtol=1e-8, atol=1e-8
    )


def test_rank_deficient():
    graph = GaussianFactorGraph(
        [
            JacobianFactor.make([(0, onp.zeros((2, 2)))], onp.ones(2)),
            JacobianFactor.make([(0, onp.eye(2)), (1, onp.eye(2))], onp.ones(2)),
        ]
    )
    with pytest.raises(jaxelim.EliminationFailure):
        graph.eliminate_sequential([1, 0])

    # Rows are too few to determine variable 0.
    underdetermined = GaussianFactorGraph(
        [JacobianFactor.make([(0, onp.ones((1, 2)))], onp.ones(1))]
    )
    with pytest.raises(jaxelim.EliminationFailure):
        underdetermined.eliminate_sequential()


def test_rank_tolerance():
    graph = GaussianFactorGraph(
        [JacobianFactor.make([(0, 1e-6 * onp.eye(2))], onp.ones(2))]
    )
    graph.eliminate_sequential(procedure=EliminateQR(rank_tolerance=1e-9))
    with pytest.raises(jaxelim.EliminationFailure):
        graph.eliminate_sequential(procedure=EliminateQR(rank_tolerance=1e-3))


def test_determinant():
    graph = _random_chain_graph(num_vars=3)
    A, _ = graph.dense_jacobian()
    A = onp.asarray(A)
    bayes_net, _ = graph.eliminate_sequential()
    onp.testing.assert_allclose(
        bayes_net.determinant(), onp.sqrt(onp.linalg.det(A.T @ A)), rtol=1e-8
    )


def test_error():
    graph = _random_chain_graph(num_vars=3)
    x = graph.optimize()
    A, b = graph.dense_jacobian()
    residual = onp.asarray(A) @ onp.asarray(x.as_vector()) - onp.asarray(b)
    onp.testing.assert_allclose(graph.error(x), 0.5 * residual @ residual)


def test_factor_equals_nan():
    factor = JacobianFactor.make([(0, onp.eye(2))], [1.0, onp.nan])
    finite = JacobianFactor.make([(0, onp.eye(2))], [1.0, 2.0])
    assert factor.equals(factor)
    assert not factor.equals(finite)
    assert not finite.equals(factor)

    conditional = GaussianConditional(
        keys=(0,),
        Ab=VerticalBlockMatrix.from_blocks([onp.eye(2), onp.array([[1.0], [onp.nan]])]),
        n_frontals=1,
    )
    assert conditional.equals(conditional)
    assert not conditional.equals(
        GaussianConditional(
            keys=(0,),
            Ab=VerticalBlockMatrix.from_blocks([onp.eye(2), onp.ones((2, 1))]),
            n_frontals=1,
        )
    )

    # Trees holding factors with NaN entries are still equal to themselves.
    tree = EliminationTree(GaussianFactorGraph([factor]), [0])
    assert tree.equals(tree.copy())


def test_dense_jacobian_empty():
    A, b = GaussianFactorGraph([None]).dense_jacobian()
    assert A.shape == (0, 0)
    assert b.shape == (0,)

    A, b = GaussianFactorGraph().dense_jacobian()
    assert A.shape == (0, 0)
    assert b.shape == (0,)

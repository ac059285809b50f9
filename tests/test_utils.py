import numpy as onp
from _symbolic import SymbolicFactor
from loguru import logger

from jaxelim import utils
from jaxelim.inference import EliminationTree, FactorGraph
from jaxelim.linear import GaussianFactorGraph, JacobianFactor


def _capture_logs(fn) -> list:
    messages = []
    handler_id = logger.add(messages.append, level="DEBUG", format="{message}")
    try:
        fn()
    finally:
        logger.remove(handler_id)
    return [str(message).rstrip("\n") for message in messages]


def test_stopwatch():
    def run():
        with utils.stopwatch("sleep"):
            pass

    lines = _capture_logs(run)
    assert len(lines) == 1
    assert "Finished (sleep)" in lines[0]
    assert "seconds" in lines[0]


def test_stopwatch_times_elimination():
    graph = GaussianFactorGraph(
        [
            JacobianFactor.make([(0, onp.eye(2))], [1.0, 2.0]),
            JacobianFactor.make([(0, onp.eye(2)), (1, -onp.eye(2))], [0.0, 0.0]),
        ]
    )
    lines = _capture_logs(lambda: graph.eliminate_sequential())
    assert any("Finished (eliminate_sequential)" in line for line in lines)


def test_equal_with_abs_tol():
    assert utils.equal_with_abs_tol([1.0, 2.0], [1.0, 2.0 + 1e-12])
    assert not utils.equal_with_abs_tol([1.0, 2.0], [1.0, 2.1])
    assert not utils.equal_with_abs_tol([1.0], [1.0, 2.0])
    assert utils.equal_with_abs_tol(onp.zeros((0, 3)), onp.zeros((0, 3)))
    assert utils.equal_with_abs_tol([onp.nan, 1.0], [onp.nan, 1.0])
    assert not utils.equal_with_abs_tol([onp.nan, 1.0], [0.0, 1.0])
    assert not utils.equal_with_abs_tol([0.0, 1.0], [onp.nan, 1.0])


def test_log_sink():
    graph = FactorGraph([SymbolicFactor((0, 1)), SymbolicFactor((1, 2))])
    tree = EliminationTree(graph, [0, 1, 2])

    lines = _capture_logs(lambda: tree.print("tree: ", sink=utils.log_sink))
    assert lines == tree.format("tree: ")
    assert lines[0] == "tree: (2)"

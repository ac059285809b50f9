import pytest
from _symbolic import SymbolicFactor

import jaxelim
from jaxelim.inference import FactorGraph, Ordering, VariableIndex


def test_variable_index():
    graph = FactorGraph(
        [
            SymbolicFactor((0, 1)),
            None,
            SymbolicFactor((1, 2)),
            SymbolicFactor((2,)),
        ]
    )
    index = VariableIndex(graph)
    assert index[0] == [0]
    assert index[1] == [0, 2]
    assert index[2] == [2, 3]
    assert len(index) == 3
    assert index.keys() == [0, 1, 2]
    assert index.n_factors == 4
    assert index.n_entries == 5
    assert 1 in index
    assert 3 not in index

    with pytest.raises(KeyError):
        index[3]


def test_variable_index_augment():
    index = VariableIndex([SymbolicFactor((0, 1))])
    index.augment([SymbolicFactor((1, 3))])
    assert index[1] == [0, 1]
    assert index[3] == [1]
    assert index.n_factors == 2


def test_ordering():
    ordering = Ordering([3, 1, 2])
    assert len(ordering) == 3
    assert list(ordering) == [3, 1, 2]
    assert ordering[0] == 3
    assert ordering[1:] == Ordering([1, 2])
    assert ordering.invert() == {3: 0, 1: 1, 2: 2}


def test_ordering_duplicates():
    with pytest.raises(jaxelim.InvalidOrdering):
        Ordering([0, 1, 0])


def test_natural_ordering():
    graph = FactorGraph([SymbolicFactor((5, 1)), SymbolicFactor((3,)), None])
    assert list(Ordering.natural(graph)) == [1, 3, 5]

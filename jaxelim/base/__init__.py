from ._vertical_block_matrix import VerticalBlockMatrix

__all__ = [
    "VerticalBlockMatrix",
]

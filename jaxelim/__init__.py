from . import base, hints, inference, linear, utils
from ._exceptions import (
    DuplicateKey,
    EliminationFailure,
    InvalidKey,
    InvalidOrdering,
    InvariantViolation,
    JaxelimError,
    SizeMismatch,
)

__all__ = [
    "base",
    "hints",
    "inference",
    "linear",
    "utils",
    "DuplicateKey",
    "EliminationFailure",
    "InvalidKey",
    "InvalidOrdering",
    "InvariantViolation",
    "JaxelimError",
    "SizeMismatch",
]

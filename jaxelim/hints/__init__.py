from ._aliases import Array, Key, KeyFormatter, Pytree, Scalar, Sink

__all__ = [
    "Array",
    "Key",
    "KeyFormatter",
    "Pytree",
    "Scalar",
    "Sink",
]

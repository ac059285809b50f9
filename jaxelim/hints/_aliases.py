from typing import Any, Callable, Union

import numpy as onp
from jax import numpy as jnp

Array = Union[jnp.ndarray, onp.ndarray]
Scalar = Union[Array, float]

Pytree = Any

Key = int
"""Variables are identified by small non-negative integers."""

KeyFormatter = Callable[[Key], str]
Sink = Callable[[str], Any]

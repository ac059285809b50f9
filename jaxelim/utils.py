import contextlib
import time
from typing import Generator, Iterable

import termcolor
from jax import numpy as jnp
from loguru import logger

from . import hints


def default_key_formatter(key: hints.Key) -> str:
    """Default formatter for variable keys."""
    return str(key)


def equal_with_abs_tol(a: hints.Array, b: hints.Array, tol: float = 1e-9) -> bool:
    """Entry-wise comparison with an absolute tolerance.

    Shapes must match. NaN entries only match NaN entries, and infinite entries only
    match infinities of the same sign."""
    a = jnp.asarray(a)
    b = jnp.asarray(b)
    if a.shape != b.shape:
        return False
    if a.size == 0:
        return True

    a_nan = jnp.isnan(a)
    if bool(jnp.any(a_nan != jnp.isnan(b))):
        return False
    diff = jnp.where(a_nan | (a == b), 0.0, jnp.abs(a - b))
    return float(jnp.max(diff)) <= tol


@contextlib.contextmanager
def stopwatch(label: str = "unlabeled block") -> Generator[None, None, None]:
    """Context manager for measuring runtime. The elapsed time is logged at DEBUG
    level."""
    start_time = time.perf_counter()
    yield
    elapsed = termcolor.colored(f"{time.perf_counter() - start_time:.4f}", attrs=["bold"])
    logger.opt(depth=2).debug("Finished ({}) in {} seconds", label, elapsed)


def emit_lines(lines: Iterable[str], sink: hints.Sink = print) -> None:
    """Send a block of debug output to a sink, one line at a time.

    Used by the `print()` helpers on containers. Passing `logger.debug` as the sink
    routes output through loguru instead of stdout."""
    for line in lines:
        sink(line)


def log_sink(line: str) -> None:
    """Sink that forwards debug output to loguru."""
    logger.opt(depth=1).debug("{}", line)

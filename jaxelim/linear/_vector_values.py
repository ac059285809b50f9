from __future__ import annotations

import dataclasses
from typing import Iterator, Mapping, Sequence

import jax
from jax import numpy as jnp

from .. import hints, utils
from .._exceptions import DuplicateKey, InvalidKey, SizeMismatch


def _as_vector(value: hints.Array) -> jax.Array:
    out = jnp.atleast_1d(jnp.asarray(value))
    assert out.ndim == 1, f"Expected a 1D vector, but got shape {out.shape}."
    return out


@dataclasses.dataclass(eq=False)
class VectorValues:
    """Storage for one dense vector per variable index.

    Slots are indexed by variable index `0 ... len(self) - 1`, and each slot can have
    its own dimension. Unused variable indices are held as zero-length placeholder
    vectors.

    Note that this is a vanilla (mutable) dataclass -- not a PyTree. Contained vectors
    are JAX arrays, which are themselves immutable; mutating operations replace them.
    """

    values: list[jax.Array] = dataclasses.field(default_factory=list)
    """Vector for each variable index."""

    def __post_init__(self) -> None:
        self.values = [_as_vector(v) for v in self.values]

    # Construction helpers.

    @staticmethod
    def from_dict(vectors: Mapping[hints.Key, hints.Array]) -> VectorValues:
        """Build from a `variable index -> vector` mapping. Indices that are not
        present are filled with zero-length vectors."""
        out = VectorValues()
        for j in sorted(vectors.keys()):
            out.insert(j, vectors[j])
        return out

    @staticmethod
    def zeros(num_vars: int, var_dim: int) -> VectorValues:
        """`num_vars` zero vectors, each with dimension `var_dim`."""
        out = VectorValues()
        out.resize(num_vars, var_dim)
        return out

    @staticmethod
    def zero_like(other: VectorValues) -> VectorValues:
        """Zero vectors with the same structure as `other`. Does not modify `other`."""
        return VectorValues([jnp.zeros_like(v) for v in other.values])

    @staticmethod
    def same_structure(other: VectorValues) -> VectorValues:
        """Allocate storage with the same structure as `other`. Contents are zeroed."""
        out = VectorValues()
        out.resize_like(other)
        return out

    # Structure.

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[jax.Array]:
        return iter(self.values)

    def __getitem__(self, j: hints.Key) -> jax.Array:
        return self.values[j]

    def __setitem__(self, j: hints.Key, value: hints.Array) -> None:
        """Overwrite the vector of an existing variable. The dimension is allowed to
        change."""
        self.values[j] = _as_vector(value)

    def dim(self, j: hints.Key) -> int:
        return self.values[j].shape[0]

    def dims(self) -> list[int]:
        """Dimension of each slot, in variable index order."""
        return [v.shape[0] for v in self.values]

    def exists(self, j: hints.Key) -> bool:
        """Check whether a variable index exists.

        This is coarse: every index below `len(self)` counts as existing, including
        zero-length placeholders that were created implicitly by growing the container
        or by `resize()`. It does not track which slots were explicitly inserted."""
        return 0 <= j < len(self.values)

    def insert(self, j: hints.Key, value: hints.Array) -> None:
        """Insert the vector for variable index `j`, growing the container with
        zero-length placeholders if needed.

        Raises `InvalidKey` if `j` is negative, and `DuplicateKey` if `exists(j)`."""
        if j < 0:
            raise InvalidKey(f"Variable indices must be non-negative, got {j}.")
        if self.exists(j):
            raise DuplicateKey(
                f"Requested variable index {j} to insert already exists."
            )
        if j >= len(self.values):
            self.values.extend(jnp.zeros((0,)) for _ in range(j + 1 - len(self.values)))
        self.values[j] = _as_vector(value)

    def resize(self, num_vars: int, var_dim: int) -> None:
        """Discard contents and allocate `num_vars` zero vectors of dimension
        `var_dim`."""
        self.values = [jnp.zeros((var_dim,)) for _ in range(num_vars)]

    def resize_like(self, other: VectorValues) -> None:
        """Discard contents and allocate zero vectors with the dimensions of
        `other`."""
        self.values = [jnp.zeros_like(v) for v in other.values]

    def set_zero(self) -> None:
        self.values = [jnp.zeros_like(v) for v in self.values]

    def has_same_structure(self, other: VectorValues) -> bool:
        """Check that both containers have the same number of slots and the same
        per-slot dimensions. Values are ignored."""
        return self.dims() == other.dims()

    def swap(self, other: VectorValues) -> None:
        self.values, other.values = other.values, self.values

    # Arithmetic.

    def _check_same_structure(self, other: VectorValues, op: str) -> None:
        if len(self.values) != len(other.values):
            raise SizeMismatch(
                f"VectorValues.{op} called with {len(self.values)} and"
                f" {len(other.values)} variables."
            )
        for j, (a, b) in enumerate(zip(self.values, other.values)):
            if a.shape != b.shape:
                raise SizeMismatch(
                    f"VectorValues.{op} called with different dimensions for variable"
                    f" {j}: {a.shape[0]} and {b.shape[0]}."
                )

    def __add__(self, other: VectorValues) -> VectorValues:
        self._check_same_structure(other, "__add__")
        return VectorValues([a + b for a, b in zip(self.values, other.values)])

    def __sub__(self, other: VectorValues) -> VectorValues:
        self._check_same_structure(other, "__sub__")
        return VectorValues([a - b for a, b in zip(self.values, other.values)])

    def __iadd__(self, other: VectorValues) -> VectorValues:
        self._check_same_structure(other, "__iadd__")
        self.values = [a + b for a, b in zip(self.values, other.values)]
        return self

    def dot(self, other: VectorValues) -> float:
        self._check_same_structure(other, "dot")
        return float(
            sum(jnp.dot(a, b) for a, b in zip(self.values, other.values))
        )

    def squared_norm(self) -> float:
        return float(sum(jnp.sum(v**2) for v in self.values))

    def norm(self) -> float:
        return float(jnp.sqrt(self.squared_norm()))

    # Flattening.

    def as_vector(self) -> jax.Array:
        """Concatenate all vectors, in variable index order."""
        return self.vector(range(len(self.values)))

    def vector(self, indices: Sequence[hints.Key]) -> jax.Array:
        """Concatenate the vectors of a subset of variables, in the given order.
        Indices may repeat."""
        parts = [self.values[j] for j in indices]
        if len(parts) == 0:
            return jnp.zeros((0,))
        return jnp.concatenate(parts, axis=0)

    # Comparison and printing.

    def equals(self, other: VectorValues, tol: float = 1e-9) -> bool:
        """Approximate equality, with an absolute tolerance on each entry. NaN entries
        only match NaN entries."""
        if len(self.values) != len(other.values):
            return False
        return all(
            utils.equal_with_abs_tol(a, b, tol)
            for a, b in zip(self.values, other.values)
        )

    def format(
        self,
        name: str = "",
        key_formatter: hints.KeyFormatter = utils.default_key_formatter,
    ) -> list[str]:
        lines = [f"{name}: {len(self.values)} elements"]
        for j, v in enumerate(self.values):
            lines.append(f"  {key_formatter(j)}: {v}")
        return lines

    def print(
        self,
        name: str = "",
        key_formatter: hints.KeyFormatter = utils.default_key_formatter,
        sink: hints.Sink = print,
    ) -> None:
        utils.emit_lines(self.format(name, key_formatter), sink=sink)

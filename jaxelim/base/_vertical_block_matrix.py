from __future__ import annotations

from typing import Sequence

import jax
import jax_dataclasses as jdc
from jax import numpy as jnp

from .. import hints
from .._exceptions import InvariantViolation


@jdc.pytree_dataclass
class VerticalBlockMatrix:
    """A dense matrix partitioned into contiguous column blocks of arbitrary widths.

    Used to store the stacked `[A_1 | A_2 | ... | b]` blocks of Jacobian factors and
    Gaussian conditionals without allocating each block separately.

    An "active view" selects rows `[row_start, row_end)` and blocks
    `[block_start, block_end)`; all accessors (`rows()`, `block(i)`, ...) are relative
    to the active view. Only the backing `matrix` is a pytree leaf, the block layout is
    static.
    """

    matrix: jax.Array
    """Backing storage. Shape should be `(total_rows, variable_col_offsets[-1])`."""

    variable_col_offsets: jdc.Static[tuple[int, ...]]
    """Start column of each block, plus a trailing entry for the total width. Always
    starts at zero and is strictly increasing."""

    row_start: jdc.Static[int]
    row_end: jdc.Static[int]
    block_start: jdc.Static[int]
    block_end: jdc.Static[int]

    @staticmethod
    def make(
        dims: Sequence[int], rows: int, append_one_dimension: bool = False
    ) -> VerticalBlockMatrix:
        """Create a zero matrix with one column block per entry of `dims`. If
        `append_one_dimension` is set, a trailing 1-wide block is added; this is where
        right-hand side vectors are stored."""
        offsets = [0]
        for dim in dims:
            offsets.append(offsets[-1] + dim)
        if append_one_dimension:
            offsets.append(offsets[-1] + 1)

        out = VerticalBlockMatrix(
            matrix=jnp.zeros((rows, offsets[-1])),
            variable_col_offsets=tuple(offsets),
            row_start=0,
            row_end=rows,
            block_start=0,
            block_end=len(offsets) - 1,
        )
        out.assert_invariants()
        return out

    @staticmethod
    def from_blocks(blocks: Sequence[hints.Array]) -> VerticalBlockMatrix:
        """Horizontally stack a sequence of 2D blocks with matching row counts."""
        assert len(blocks) > 0
        blocks = [jnp.asarray(block) for block in blocks]
        offsets = [0]
        for block in blocks:
            assert block.ndim == 2, "Blocks should be 2D!"
            offsets.append(offsets[-1] + block.shape[1])

        rows = blocks[0].shape[0]
        out = VerticalBlockMatrix(
            matrix=jnp.concatenate(blocks, axis=1),
            variable_col_offsets=tuple(offsets),
            row_start=0,
            row_end=rows,
            block_start=0,
            block_end=len(offsets) - 1,
        )
        out.assert_invariants()
        return out

    @staticmethod
    def like_active_view_of(source: VerticalBlockMatrix) -> VerticalBlockMatrix:
        """Create a zero matrix with the same shape and block structure as the
        *active view* of `source`. Block offsets are shifted to start at zero. No
        values are copied."""
        first_col = source.variable_col_offsets[source.block_start]
        offsets = tuple(
            offset - first_col
            for offset in source.variable_col_offsets[
                source.block_start : source.block_end + 1
            ]
        )
        rows = source.rows()

        out = VerticalBlockMatrix(
            matrix=jnp.zeros((rows, offsets[-1]), dtype=source.matrix.dtype),
            variable_col_offsets=offsets,
            row_start=0,
            row_end=rows,
            block_start=0,
            block_end=len(offsets) - 1,
        )
        out.assert_invariants()
        return out

    def assert_invariants(self) -> None:
        """Check that the block layout and active view are consistent. Raises
        `InvariantViolation` otherwise."""
        offsets = self.variable_col_offsets
        total_blocks = len(offsets) - 1
        # Trailing two axes; a leading batch axis may be present under vmap.
        total_rows, total_cols = self.matrix.shape[-2:]

        if len(offsets) == 0 or offsets[0] != 0:
            raise InvariantViolation(f"Column offsets must start at zero: {offsets}")
        for i in range(total_blocks):
            if offsets[i + 1] <= offsets[i]:
                raise InvariantViolation(
                    f"Column offsets must be strictly increasing: {offsets}"
                )
        if offsets[-1] != total_cols:
            raise InvariantViolation(
                f"Matrix has {total_cols} columns, but block offsets describe"
                f" {offsets[-1]}."
            )
        if not 0 <= self.row_start <= self.row_end <= total_rows:
            raise InvariantViolation(
                f"Invalid active rows [{self.row_start}, {self.row_end}) for matrix"
                f" with {total_rows} rows."
            )
        if not 0 <= self.block_start <= self.block_end <= total_blocks:
            raise InvariantViolation(
                f"Invalid active blocks [{self.block_start}, {self.block_end}) for"
                f" matrix with {total_blocks} blocks."
            )

    # Active view dimensions.

    def n_blocks(self) -> int:
        return self.block_end - self.block_start

    def rows(self) -> int:
        return self.row_end - self.row_start

    def cols(self) -> int:
        return (
            self.variable_col_offsets[self.block_end]
            - self.variable_col_offsets[self.block_start]
        )

    def block_dim(self, i: int) -> int:
        """Number of columns in block `i` of the active view."""
        assert 0 <= i < self.n_blocks()
        j = self.block_start + i
        return self.variable_col_offsets[j + 1] - self.variable_col_offsets[j]

    # Accessors.

    def range(self, i_start: int, i_end: int) -> jax.Array:
        """Columns spanned by blocks `[i_start, i_end)` of the active view."""
        assert 0 <= i_start <= i_end <= self.n_blocks()
        col_start = self.variable_col_offsets[self.block_start + i_start]
        col_end = self.variable_col_offsets[self.block_start + i_end]
        return self.matrix[self.row_start : self.row_end, col_start:col_end]

    def block(self, i: int) -> jax.Array:
        return self.range(i, i + 1)

    def full(self) -> jax.Array:
        return self.range(0, self.n_blocks())

    # Functional updates.

    def with_active_view(
        self,
        row_start: int | None = None,
        row_end: int | None = None,
        block_start: int | None = None,
        block_end: int | None = None,
    ) -> VerticalBlockMatrix:
        """Returns a copy with an updated active view. Indices are absolute, and any
        argument that is left as `None` is kept."""
        out = jdc.replace(
            self,
            row_start=self.row_start if row_start is None else row_start,
            row_end=self.row_end if row_end is None else row_end,
            block_start=self.block_start if block_start is None else block_start,
            block_end=self.block_end if block_end is None else block_end,
        )
        out.assert_invariants()
        return out

    def with_block(self, i: int, value: hints.Array) -> VerticalBlockMatrix:
        """Returns a copy with block `i` of the active view overwritten."""
        assert 0 <= i < self.n_blocks()
        j = self.block_start + i
        col_start = self.variable_col_offsets[j]
        col_end = self.variable_col_offsets[j + 1]
        value = jnp.asarray(value)
        assert value.shape == (self.rows(), col_end - col_start), (
            f"Expected block with shape {(self.rows(), col_end - col_start)}, but got"
            f" {value.shape}."
        )
        out = jdc.replace(
            self,
            matrix=self.matrix.at[
                self.row_start : self.row_end, col_start:col_end
            ].set(value),
        )
        out.assert_invariants()
        return out

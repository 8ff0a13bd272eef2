"""Matrix transposes, including the fixed-shape variants used when packing weights."""

from __future__ import annotations

from typing import Any

import numpy as np

__all__ = [
    "transpose",
    "transpose_16x16",
    "transpose_16x32_pack",
    "transpose_16xn",
    "transpose_16xn_pack",
]

_BLOCK_ROWS = 16
_PACK_COLS = 32


def _as_matrix(matrix: Any) -> np.ndarray:
    arr = np.asarray(matrix)
    if arr.ndim != 2:
        raise ValueError(f"expected a two-dimensional matrix, got {arr.ndim} dimension(s)")
    return arr


def _check_shape(arr: np.ndarray, rows: int, cols: int | None = None) -> None:
    if arr.shape[0] != rows or (cols is not None and arr.shape[1] != cols):
        wanted = f"{rows}x{cols}" if cols is not None else f"{rows}xN"
        raise ValueError(f"expected a {wanted} matrix, got {arr.shape[0]}x{arr.shape[1]}")


def _transposed(arr: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(arr.T)


def transpose(matrix: Any) -> np.ndarray:
    """Return the transpose of a rows x cols matrix as a new cols x rows array.

    The element type is kept, so float32, int32 and arrays of
    :class:`~xdnn.dtypes.BFloat16` values all work.
    """
    return _transposed(_as_matrix(matrix))


def transpose_16x16(matrix: Any) -> np.ndarray:
    """Transpose a 16x16 block."""
    arr = _as_matrix(matrix)
    _check_shape(arr, _BLOCK_ROWS, _BLOCK_ROWS)
    return _transposed(arr)


def transpose_16xn(matrix: Any) -> np.ndarray:
    """Transpose a block of 16 rows and any number of columns."""
    arr = _as_matrix(matrix)
    _check_shape(arr, _BLOCK_ROWS)
    return _transposed(arr)


def transpose_16x32_pack(matrix: Any) -> np.ndarray:
    """Transpose a 16x32 block of 16-bit values for weight packing."""
    arr = _as_matrix(matrix)
    _check_shape(arr, _BLOCK_ROWS, _PACK_COLS)
    return _transposed(arr)


def transpose_16xn_pack(matrix: Any) -> np.ndarray:
    """Transpose a block of 16 rows of 16-bit values for weight packing."""
    arr = _as_matrix(matrix)
    _check_shape(arr, _BLOCK_ROWS)
    return _transposed(arr)
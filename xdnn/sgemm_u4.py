"""Single-precision GEMM against a weight matrix quantised to unsigned 4-bit codes.

``B`` is quantised per output column with an asymmetric range: the
smallest value becomes the zero point when it is negative, and the range
is split into 15 steps. Two consecutive codes along ``K`` share one byte,
with the first code in the low nibble.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

__all__ = [
    "PackedU4",
    "QuantizedU4",
    "compute",
    "compute_biasadd",
    "compute_biasadd_relu",
    "compute_gelu",
    "compute_residential",
    "compute_resext",
    "compute_resmul",
    "compute_silu",
    "gelu",
    "pack_b",
    "quantize",
    "sgemm",
    "silu",
    "small_sgemm",
]

_LEVELS = np.float32(15.0)
_GELU_COEFF = np.float32(np.sqrt(2.0 / np.pi))
_GELU_CUBIC = np.float32(0.044715)


def silu(x: Any) -> Any:
    """SiLU activation, ``x * sigmoid(x)``, in single precision."""
    v = np.asarray(x, dtype=np.float32)
    with np.errstate(over="ignore"):
        result = (v / (np.float32(1.0) + np.exp(-v))).astype(np.float32)
    return result[()] if result.ndim == 0 else result


def gelu(x: Any) -> Any:
    """GELU activation using the tanh approximation, in single precision."""
    v = np.asarray(x, dtype=np.float32)
    inner = _GELU_COEFF * (v + _GELU_CUBIC * v * v * v)
    result = (np.float32(0.5) * v * (np.float32(1.0) + np.tanh(inner))).astype(np.float32)
    return result[()] if result.ndim == 0 else result


@dataclass(frozen=True)
class QuantizedU4:
    """A quantised ``B`` matrix.

    ``data`` holds packed bytes: ``(ceil(K/2), N)`` when ``trans_b`` is false,
    ``(N, ceil(K/2))`` when it is true. ``scale`` and ``zero`` hold one
    entry per column of the logical ``K x N`` matrix.
    """

    data: np.ndarray
    scale: np.ndarray
    zero: np.ndarray
    k: int
    trans_b: bool = False

    @property
    def n(self) -> int:
        return int(self.scale.shape[0])


@dataclass(frozen=True)
class PackedU4:
    """A quantised ``B`` matrix in compact ``(ceil(K/2), N)`` layout."""

    data: np.ndarray
    scale: np.ndarray
    zero: np.ndarray
    k: int

    @property
    def n(self) -> int:
        return int(self.scale.shape[0])


def _packed_k(k: int) -> int:
    return (k + 1) // 2


def _round_half_away(x: np.ndarray) -> np.ndarray:
    return np.sign(x) * np.floor(np.abs(x) + 0.5)


def quantize(b: Any, trans_b: bool = False, quantization_rate: float = 1.0) -> QuantizedU4:
    """Quantise ``B`` (``K x N``, or ``N x K`` when ``trans_b``) per column.

    ``quantization_rate`` is accepted for interface compatibility; the
    asymmetric range always spans the full minimum and maximum of a column.
    """
    arr = np.asarray(b, dtype=np.float32)
    if arr.ndim != 2:
        raise ValueError("B must be a two-dimensional matrix")
    cols = arr.T if trans_b else arr  # logical K x N view
    k, n = cols.shape
    if k == 0 or n == 0:
        raise ValueError("B must not be empty")
    float(quantization_rate)

    min_val = cols.min(axis=0)
    max_val = cols.max(axis=0)
    negative = min_val < 0
    scale = np.where(negative, (max_val - min_val) / _LEVELS, max_val / _LEVELS).astype(np.float32)
    zero = np.where(negative, min_val, np.float32(0.0)).astype(np.float32)

    padded = np.zeros((2 * _packed_k(k), n), dtype=np.float32)
    padded[:k] = cols
    safe_scale = np.where(scale == 0, np.float32(1.0), scale)
    with np.errstate(invalid="ignore", divide="ignore"):
        levels = _round_half_away((padded - zero) / safe_scale)
    levels = np.where(scale == 0, 0.0, levels)
    codes = np.clip(levels, 0, 15).astype(np.uint8)
    packed = (codes[0::2] | (codes[1::2] << 4)).astype(np.uint8)

    data = np.ascontiguousarray(packed.T) if trans_b else packed
    return QuantizedU4(data=data, scale=scale, zero=zero, k=k, trans_b=bool(trans_b))


def _dequantize(data: np.ndarray, scale: np.ndarray, zero: np.ndarray, k: int) -> np.ndarray:
    """Expand ``(ceil(K/2), N)`` packed bytes to a float32 ``K x N`` matrix."""
    rows, n = data.shape
    codes = np.empty((2 * rows, n), dtype=np.float32)
    codes[0::2] = data & 0x0F
    codes[1::2] = (data >> 4) & 0x0F
    return (codes[:k] * scale + zero).astype(np.float32)


def _compact(quantized: QuantizedU4) -> np.ndarray:
    data = np.asarray(quantized.data, dtype=np.uint8)
    expected = (quantized.n, _packed_k(quantized.k)) if quantized.trans_b else (_packed_k(quantized.k), quantized.n)
    if data.shape != expected:
        raise ValueError(f"quantised data has shape {data.shape}, expected {expected}")
    return data.T if quantized.trans_b else data


def _prepare_a(a: Any, k: int, trans_a: bool) -> np.ndarray:
    arr = np.asarray(a, dtype=np.float32)
    if arr.ndim != 2:
        raise ValueError("A must be a two-dimensional matrix")
    if trans_a:
        arr = arr.T
    if arr.shape[1] != k:
        raise ValueError(f"A has inner dimension {arr.shape[1]}, expected {k}")
    return arr


def _gemm(a: Any, b: np.ndarray, c: Any, alpha: float, beta: float, trans_a: bool) -> np.ndarray:
    a2 = _prepare_a(a, b.shape[0], trans_a)
    shape = (a2.shape[0], b.shape[1])
    if c is None:
        out = np.zeros(shape, dtype=np.float32)
    else:
        out = np.array(c, dtype=np.float32)
        if out.shape != shape:
            raise ValueError(f"C has shape {out.shape}, expected {shape}")
        if beta != 1.0:
            out *= np.float32(beta)
    out += np.float32(alpha) * (a2 @ b).astype(np.float32)
    return out


def _row_vector(values: Any, n: int, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float32)
    if arr.shape != (n,):
        raise ValueError(f"{name} must have {n} entries")
    return arr


def _matrix(values: Any, shape: tuple[int, ...], name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float32)
    if arr.shape != shape:
        raise ValueError(f"{name} has shape {arr.shape}, expected {shape}")
    return arr


def sgemm(
    a: Any,
    quantized: QuantizedU4,
    c: Any = None,
    alpha: float = 1.0,
    beta: float = 0.0,
    trans_a: bool = False,
) -> np.ndarray:
    """Return ``alpha * A @ B + beta * C`` with ``B`` dequantised on the fly."""
    b = _dequantize(_compact(quantized), quantized.scale, quantized.zero, quantized.k)
    return _gemm(a, b, c, alpha, beta, trans_a)


def pack_b(quantized: QuantizedU4) -> PackedU4:
    """Lay a quantised matrix out in compact ``(ceil(K/2), N)`` form."""
    data = np.ascontiguousarray(_compact(quantized))
    return PackedU4(data=data, scale=quantized.scale, zero=quantized.zero, k=quantized.k)


def compute(
    a: Any,
    packed: PackedU4,
    c: Any = None,
    alpha: float = 1.0,
    beta: float = 0.0,
    trans_a: bool = False,
) -> np.ndarray:
    """Return ``alpha * A @ packedB + beta * C``."""
    data = np.asarray(packed.data, dtype=np.uint8)
    if data.shape != (_packed_k(packed.k), packed.n):
        raise ValueError("packed data does not match its K and N")
    b = _dequantize(data, packed.scale, packed.zero, packed.k)
    return _gemm(a, b, c, alpha, beta, trans_a)


def compute_silu(a, packed, c=None, alpha=1.0, beta=0.0, trans_a=False) -> np.ndarray:
    """Return ``SILU(alpha * A @ packedB + beta * C)``."""
    return silu(compute(a, packed, c, alpha, beta, trans_a))


def compute_gelu(a, packed, c=None, alpha=1.0, beta=0.0, trans_a=False) -> np.ndarray:
    """Return ``GELU(alpha * A @ packedB + beta * C)``."""
    return gelu(compute(a, packed, c, alpha, beta, trans_a))


def compute_biasadd(a, packed, bias, c=None, alpha=1.0, beta=0.0, trans_a=False) -> np.ndarray:
    """Return ``alpha * A @ packedB + beta * C + bias``."""
    bias_row = _row_vector(bias, packed.n, "bias")
    out = compute(a, packed, c, alpha, beta, trans_a)
    out += bias_row
    return out


def compute_biasadd_relu(a, packed, bias, c=None, alpha=1.0, beta=0.0, trans_a=False) -> np.ndarray:
    """Return ``RELU(alpha * A @ packedB + beta * C + bias)``."""
    out = compute_biasadd(a, packed, bias, c, alpha, beta, trans_a)
    return np.maximum(out, np.float32(0.0))


def compute_residential(a, packed, bias, res, c=None, alpha=1.0, beta=0.0, trans_a=False) -> np.ndarray:
    """Return ``alpha * A @ packedB + beta * C + bias + res``."""
    out = compute_biasadd(a, packed, bias, c, alpha, beta, trans_a)
    out += _matrix(res, out.shape, "res")
    return out


def compute_resext(a, packed, bias, gamma, res, c=None, alpha=1.0, beta=0.0, trans_a=False) -> np.ndarray:
    """Return ``alpha * A @ packedB + beta * C + bias + gamma * res``."""
    out = compute_biasadd(a, packed, bias, c, alpha, beta, trans_a)
    out += np.float32(gamma) * _matrix(res, out.shape, "res")
    return out


def compute_resmul(a, packed, res, c=None, alpha=1.0, beta=0.0, trans_a=False) -> np.ndarray:
    """Return ``(alpha * A @ packedB + beta * C) * res``."""
    out = compute(a, packed, c, alpha, beta, trans_a)
    out *= _matrix(res, out.shape, "res")
    return out


def small_sgemm(a: Any, quantized: QuantizedU4) -> np.ndarray:
    """Return ``A @ B`` for small matrices, with ``A`` not transposed."""
    return sgemm(a, quantized)
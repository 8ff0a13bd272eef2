"""Softmax over a single vector in single precision or bfloat16."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np

from .dtypes import BFloat16

__all__ = ["softmax_bf16", "softmax_f32"]


def _softmax(values: np.ndarray, scale: float) -> np.ndarray:
    if values.ndim != 1:
        raise ValueError("softmax expects a one-dimensional input")
    if values.size == 0:
        raise ValueError("softmax of an empty vector is undefined")
    scale32 = np.float32(scale)
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        exps = np.exp((values - values.max()) * scale32).astype(np.float32)
        total = exps.sum(dtype=np.float32)
        return (exps * (np.float32(1.0) / total)).astype(np.float32)


def softmax_f32(data: Iterable[float], scale: float = 1.0) -> np.ndarray:
    """Return softmax(scale * (x - max(x))) as a new float32 array."""
    return _softmax(np.array(data, dtype=np.float32), scale)


def softmax_bf16(data: Iterable[BFloat16 | float], scale: float = 1.0) -> list[BFloat16]:
    """Softmax over bfloat16 values, computed in float32 and rounded back."""
    values = np.array(
        [float(x if isinstance(x, BFloat16) else BFloat16(x)) for x in data],
        dtype=np.float32,
    )
    return [BFloat16(float(v)) for v in _softmax(values, scale)]
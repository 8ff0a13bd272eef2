"""Library-wide state, version information and data conversion."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any

import numpy as np

from .dtypes import Float16

__all__ = [
    "DataType",
    "convert_data",
    "finalize",
    "get_num_threads",
    "get_version",
    "hardware_capabilities",
    "initialize",
    "is_initialized",
    "set_num_threads",
]

_MAJOR_VERSION = 1
_MINOR_VERSION = 0
_PATCH_VERSION = 0

_CAP_AVX = 1
_CAP_AVX2 = 2
_CAP_AVX512 = 4
_CAP_AMX = 8
_AMX_FLAGS = frozenset({"amx_tile", "amx_bf16", "amx_int8"})
_CPUINFO = "/proc/cpuinfo"


class DataType(IntEnum):
    """Element types understood by :func:`convert_data`."""

    FP32 = 0
    FP16 = 1
    BF16 = 2
    INT8 = 3
    UINT4 = 4
    NF4 = 5


@dataclass
class _LibraryState:
    initialized: bool = False


_state = _LibraryState()


def get_version() -> str:
    """Return the library version as ``major.minor.patch``."""
    return f"{_MAJOR_VERSION}.{_MINOR_VERSION}.{_PATCH_VERSION}"


def initialize() -> bool:
    """Mark the library as initialised; calling it again is harmless."""
    _state.initialized = True
    return True


def finalize() -> None:
    """Release library state; does nothing if not initialised."""
    _state.initialized = False


def is_initialized() -> bool:
    """Tell whether :func:`initialize` has been called since the last finalize."""
    return _state.initialized


def _cpu_flags() -> set[str]:
    try:
        text = Path(_CPUINFO).read_text()
    except OSError:
        return set()
    flags: set[str] = set()
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip() == "flags":
            flags.update(value.split())
    return flags


def hardware_capabilities() -> int:
    """Return a bit mask of CPU features: 1 AVX, 2 AVX2, 4 AVX-512F, 8 AMX."""
    flags = _cpu_flags()
    caps = 0
    if "avx" in flags:
        caps |= _CAP_AVX
    if "avx2" in flags:
        caps |= _CAP_AVX2
    if "avx512f" in flags:
        caps |= _CAP_AVX512
    if _AMX_FLAGS <= flags:
        caps |= _CAP_AMX
    return caps


def set_num_threads(num_threads: int) -> None:
    """Request a thread count; all kernels here run on a single thread."""
    if isinstance(num_threads, bool) or not isinstance(num_threads, int):
        raise TypeError("num_threads must be an integer")
    if num_threads < 1:
        raise ValueError("num_threads must be at least 1")


def get_num_threads() -> int:
    """Return the number of threads used for computation (always 1)."""
    return 1


def convert_data(src: Iterable[Any], src_type: DataType | int, dst_type: DataType | int):
    """Convert a sequence of values between element types.

    FP32 to FP16 yields a list of :class:`~xdnn.dtypes.Float16`; FP16 to FP32
    yields a float32 array. Converting a type to itself returns a copy.
    Other combinations raise :class:`ValueError`.
    """
    source = DataType(src_type)
    target = DataType(dst_type)

    if source is DataType.FP32 and target is DataType.FP16:
        return [Float16(float(v)) for v in src]
    if source is DataType.FP16 and target is DataType.FP32:
        return np.array(
            [float(v if isinstance(v, Float16) else Float16(v)) for v in src],
            dtype=np.float32,
        )
    if source is target:
        if source is DataType.FP32:
            return np.array(list(src), dtype=np.float32)
        return list(src)
    raise ValueError(f"conversion from {source.name} to {target.name} is not supported")
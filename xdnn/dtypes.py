"""Reduced-precision number formats: bfloat16, float16, fp8 E4M3, packed 4-bit pairs and NF4."""

from __future__ import annotations

import math
import numbers
import operator
import struct
from dataclasses import dataclass
from typing import Callable

__all__ = [
    "NF4_VALUES",
    "BFloat16",
    "E4M3",
    "Float16",
    "UInt4x2",
    "bf16_bits_to_float",
    "e4m3_bits_to_bf16_bits",
    "e4m3_bits_to_float",
    "float_to_bf16_bits",
    "float_to_e4m3_bits",
    "float_to_fp16_bits",
    "fp16_bits_to_float",
    "nf4_to_float",
]


def _f32_bits(value: float) -> int:
    """Return the IEEE-754 single-precision bit pattern of ``value``."""
    try:
        packed = struct.pack("<f", value)
    except OverflowError:
        packed = struct.pack("<f", math.copysign(math.inf, value))
    return struct.unpack("<I", packed)[0]


def _bits_f32(bits: int) -> float:
    return struct.unpack("<f", struct.pack("<I", bits & 0xFFFFFFFF))[0]


def _to_f32(value: float) -> float:
    """Round ``value`` to the nearest single-precision float."""
    return _bits_f32(_f32_bits(value))


def _check_bits(bits: int, width: int) -> int:
    bits = operator.index(bits)
    if not 0 <= bits < (1 << width):
        raise ValueError(f"bit pattern {bits:#x} does not fit in {width} bits")
    return bits


def _f32_divide(lhs: float, rhs: float) -> float:
    if rhs == 0.0:
        if lhs == 0.0 or math.isnan(lhs):
            return math.nan
        return math.copysign(math.inf, lhs) * math.copysign(1.0, rhs)
    return _to_f32(lhs / rhs)


def _f32_add(lhs: float, rhs: float) -> float:
    return _to_f32(lhs + rhs)


def _f32_sub(lhs: float, rhs: float) -> float:
    return _to_f32(lhs - rhs)


def _f32_mul(lhs: float, rhs: float) -> float:
    return _to_f32(lhs * rhs)


# ---------------------------------------------------------------- bfloat16


def float_to_bf16_bits(value: float) -> int:
    """Convert a float to bfloat16 bits, rounding to nearest even."""
    bits = _f32_bits(float(value))
    high = bits >> 16
    exponent = (bits >> 23) & 0xFF
    mantissa = bits & 0x7FFFFF
    if exponent == 0:
        # Zero and subnormals flush to a signed zero.
        return high & 0x8000
    if exponent == 0xFF:
        return high if mantissa == 0 else high | 0x40
    rounding_bias = 0x7FFF + (high & 1)
    return ((bits + rounding_bias) & 0xFFFFFFFF) >> 16


def bf16_bits_to_float(bits: int) -> float:
    """Expand bfloat16 bits to a float."""
    return _bits_f32(_check_bits(bits, 16) << 16)


# ----------------------------------------------------------------- float16


def float_to_fp16_bits(value: float) -> int:
    """Convert a float to IEEE half-precision bits."""
    f = _to_f32(float(value))
    i = _f32_bits(f)
    sign = i >> 31
    exponent = (i >> 23) & 0xFF
    mantissa = i & 0x7FFFFF

    half_mantissa = mantissa >> 13
    remainder = mantissa & 0x1FFF
    half_exponent = 0
    rebiased = exponent - 127 + 15

    if exponent == 0:
        half_mantissa = 0
    elif exponent == 0xFF:
        half_exponent = 0x1F
        if mantissa != 0 and half_mantissa == 0:
            half_mantissa = 1
    elif 0 < rebiased < 0x1F:
        half_exponent = rebiased
        if remainder > 0x1000 - (half_mantissa & 1):
            half_mantissa += 1
            if half_mantissa == 0x400:
                half_mantissa = 0
                half_exponent += 1
    elif rebiased >= 0x1F:
        half_exponent = 0x1F
        half_mantissa = 0
    else:
        shifted = _to_f32(abs(f) + 0.5)
        half_mantissa = _f32_bits(shifted) & 0x7FF

    return ((sign << 15) | (half_exponent << 10) | half_mantissa) & 0xFFFF


def fp16_bits_to_float(bits: int) -> float:
    """Expand IEEE half-precision bits to a float."""
    bits = _check_bits(bits, 16)
    sign = bits >> 15
    exponent = (bits >> 10) & 0x1F
    mantissa = bits & 0x3FF

    if exponent == 0:
        if mantissa:
            return (-1.0 if sign else 1.0) * math.ldexp(float(mantissa), -24)
        wide_exponent = 0
    elif exponent == 0x1F:
        wide_exponent = 0xFF
    else:
        wide_exponent = exponent - 15 + 127

    return _bits_f32((sign << 31) | (wide_exponent << 23) | (mantissa << 13))


# -------------------------------------------------------------------- E4M3

_E4M3_ENCODE_EXACT = {0.5: 48, -0.5: 176, 2.0: 56, -2.0: 184}
_E4M3_DECODE_EXACT = {bits: value for value, bits in _E4M3_ENCODE_EXACT.items()}


def float_to_e4m3_bits(value: float) -> int:
    """Encode a float as an 8-bit E4M3 pattern (bias 7, truncated mantissa)."""
    v = _to_f32(float(value))
    if v == 0.0:
        return 0
    exact = _E4M3_ENCODE_EXACT.get(v)
    if exact is not None:
        return exact
    if not math.isfinite(v):
        raise ValueError(f"cannot encode {v!r} as E4M3")

    sign = 1 if v < 0 else 0
    mantissa, exponent = math.frexp(abs(v))
    exponent = min(max(exponent + 7, 0), 15)
    mantissa_bits = int(math.ldexp(mantissa, 3)) & 0x07
    return ((sign << 7) | (exponent << 3) | mantissa_bits) & 0xFF


def e4m3_bits_to_float(bits: int) -> float:
    """Decode an 8-bit E4M3 pattern."""
    bits = _check_bits(bits, 8)
    if bits == 0:
        return 0.0
    exact = _E4M3_DECODE_EXACT.get(bits)
    if exact is not None:
        return exact

    sign = bits >> 7
    exponent = (bits >> 3) & 0x0F
    mantissa = bits & 0x07
    if exponent == 0 and mantissa == 0:
        result = 0.0
    elif exponent == 0:
        result = (mantissa / 8.0) * 2.0**-6
    else:
        result = (1.0 + mantissa / 8.0) * 2.0 ** (exponent - 7)
    return -result if sign else result


def e4m3_bits_to_bf16_bits(bits: int) -> int:
    """Decode an E4M3 pattern and truncate it to bfloat16 bits."""
    return _f32_bits(e4m3_bits_to_float(bits)) >> 16


# --------------------------------------------------------------------- NF4

NF4_VALUES: tuple[float, ...] = tuple(
    _to_f32(v)
    for v in (
        -1.0,
        -0.69619280099868770,
        -0.52507305145263670,
        -0.39491748809814453,
        -0.28444138169288635,
        -0.18477343022823334,
        -0.09105003625154495,
        0.0,
        0.07958029955625534,
        0.16093020141124725,
        0.24611230194568634,
        0.33791524171829224,
        0.44070982933044434,
        0.56261700391769410,
        0.72295683622360230,
        1.0,
    )
)


def nf4_to_float(index: int) -> float:
    """Return the NormalFloat4 level for a 4-bit code."""
    return NF4_VALUES[_check_bits(index, 4)]


# ----------------------------------------------------------- value classes


def _as_operand(other: object) -> float | None:
    if isinstance(other, (numbers.Real, _HalfFloat, E4M3)):
        return _to_f32(float(other))
    return None


def _binary(lhs: float, other: object, op: Callable[[float, float], float]):
    rhs = _as_operand(other)
    if rhs is None:
        return NotImplemented
    return op(lhs, rhs)


class _HalfFloat:
    """Comparison and display shared by the 16-bit float formats."""

    __slots__ = ("bits",)

    def __eq__(self, other: object) -> bool:
        if type(other) is type(self):
            return self.bits == other.bits
        return NotImplemented

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.bits))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({float(self)!r})"


class BFloat16(_HalfFloat):
    """A bfloat16 value; arithmetic promotes to single precision."""

    __slots__ = ()

    def __init__(self, value: float = 0.0) -> None:
        self.bits = float_to_bf16_bits(float(value))

    @classmethod
    def from_bits(cls, bits: int) -> BFloat16:
        """Build a value from its raw 16-bit pattern."""
        obj = cls.__new__(cls)
        obj.bits = _check_bits(bits, 16)
        return obj

    def __float__(self) -> float:
        return bf16_bits_to_float(self.bits)

    def __add__(self, other):
        return _binary(float(self), other, _f32_add)

    def __sub__(self, other):
        return _binary(float(self), other, _f32_sub)

    def __mul__(self, other):
        return _binary(float(self), other, _f32_mul)

    def __truediv__(self, other):
        return _binary(float(self), other, _f32_divide)


class Float16(_HalfFloat):
    """An IEEE half-precision value; arithmetic promotes to single precision."""

    __slots__ = ()

    def __init__(self, value: float = 0.0) -> None:
        self.bits = float_to_fp16_bits(float(value))

    @classmethod
    def from_bits(cls, bits: int) -> Float16:
        """Build a value from its raw 16-bit pattern."""
        obj = cls.__new__(cls)
        obj.bits = _check_bits(bits, 16)
        return obj

    def __float__(self) -> float:
        return fp16_bits_to_float(self.bits)

    def __add__(self, other):
        return _binary(float(self), other, _f32_add)

    def __sub__(self, other):
        return _binary(float(self), other, _f32_sub)

    def __mul__(self, other):
        return _binary(float(self), other, _f32_mul)

    def __truediv__(self, other):
        return _binary(float(self), other, _f32_divide)


class E4M3:
    """An 8-bit float with 4 exponent and 3 mantissa bits.

    Integers are taken as raw bit patterns (wrapped to 8 bits); other real
    numbers are encoded.
    """

    __slots__ = ("bits",)

    def __init__(self, value: float | int = 0) -> None:
        if isinstance(value, numbers.Integral):
            self.bits = int(value) & 0xFF
        else:
            self.bits = float_to_e4m3_bits(value)

    @classmethod
    def from_bits(cls, bits: int) -> E4M3:
        """Build a value from its raw 8-bit pattern."""
        return cls(_check_bits(bits, 8))

    def __float__(self) -> float:
        return e4m3_bits_to_float(self.bits)

    def __int__(self) -> int:
        return self.bits

    def to_bf16_bits(self) -> int:
        """Return the value as truncated bfloat16 bits."""
        return e4m3_bits_to_bf16_bits(self.bits)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, E4M3):
            return self.bits == other.bits
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("E4M3", self.bits))

    def __repr__(self) -> str:
        return f"E4M3.from_bits({self.bits:#04x})"


@dataclass(frozen=True)
class UInt4x2:
    """Two unsigned 4-bit values packed in one byte, first value in the low nibble."""

    raw: int = 0

    def __post_init__(self) -> None:
        _check_bits(self.raw, 8)

    @classmethod
    def pack(cls, v1: int, v2: int = 0) -> UInt4x2:
        """Pack two values, keeping the low four bits of each."""
        return cls((int(v1) & 0x0F) | ((int(v2) & 0x0F) << 4))

    @property
    def v1(self) -> int:
        return self.raw & 0x0F

    @property
    def v2(self) -> int:
        return (self.raw >> 4) & 0x0F

    def __int__(self) -> int:
        return self.raw

    def __str__(self) -> str:
        return f"uint4x2: {self.raw:#x} {self.v1} {self.v2}"
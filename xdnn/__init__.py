"""Reduced-precision number formats, 4-bit quantized GEMM, softmax and transpose on NumPy."""

__version__ = "1.0.0"
__all__ = ["dtypes", "softmax", "transpose", "library", "sgemm_u4"]
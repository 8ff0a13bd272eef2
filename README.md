# xdnn

Building blocks for neural-network inference, written on NumPy:

- reduced-precision number formats: bfloat16, float16, FP8 (E4M3), packed
  4-bit pairs and the NF4 lookup table (`xdnn.dtypes`)
- softmax over float32 and bfloat16 vectors (`xdnn.softmax`)
- matrix transposes, including fixed 16-row shapes (`xdnn.transpose`)
- float32 × unsigned-4-bit quantized matrix multiplication with fused
  activations, bias and residual terms (`xdnn.sgemm_u4`)
- library-level helpers: version, initialisation state, CPU feature mask and
  element-wise data conversion (`xdnn.library`)

## Installation

```
pip install .
```

With the test dependencies:

```
pip install ".[test]"
```

## Number formats

```python
from xdnn.dtypes import BFloat16, Float16, E4M3, UInt4x2

a = Float16(1.5)
b = Float16(2.5)
a + b                          # 4.0, a plain float: arithmetic is done in single precision

float(BFloat16(3.14159))       # rounded to nearest even with 8 bits of mantissa

float(E4M3(0.5))               # 0.5
int(E4M3.from_bits(42))        # 42, the raw byte
E4M3(42)                       # integers are taken as raw bit patterns

pair = UInt4x2.pack(3, 12)
pair.v1, pair.v2               # (3, 12)
int(pair)                      # 0xC3, first value in the low nibble
```

`BFloat16` and `Float16` support `+`, `-`, `*` and `/` with each other and
with real numbers; the result is a Python float rounded to single precision.
Values compare equal when their bit patterns match.

Bit-level conversion functions are also available:
`float_to_bf16_bits`, `bf16_bits_to_float`, `float_to_fp16_bits`,
`fp16_bits_to_float`, `float_to_e4m3_bits`, `e4m3_bits_to_float`,
`e4m3_bits_to_bf16_bits` and `nf4_to_float` (with the table itself in
`NF4_VALUES`). Bit patterns that do not fit their width raise `ValueError`,
as does encoding an infinity or NaN as E4M3.

## Softmax

```python
from xdnn.softmax import softmax_f32, softmax_bf16

softmax_f32([1.0, 1.0, 1.0, 1.0], 1.0)   # float32 array of four 0.25 values
softmax_bf16([0.0, 1.0], 2.0)            # list of BFloat16
```

Both compute `exp((x - max(x)) * scale)` normalised to sum to one, and return
new values rather than changing their input. Empty or multi-dimensional input
raises `ValueError`.

## Transpose

```python
import numpy as np
from xdnn.transpose import transpose, transpose_16xn

m = np.arange(6, dtype=np.float32).reshape(2, 3)
transpose(m)                   # new (3, 2) array, same element type
```

`transpose_16x16`, `transpose_16xn`, `transpose_16x32_pack` and
`transpose_16xn_pack` do the same after checking that the input has the
fixed shape they expect (16×16, 16×N, 16×32, 16×N), raising `ValueError`
otherwise.

## Quantized matrix multiplication

```python
import numpy as np
from xdnn import sgemm_u4

a = np.random.rand(4, 8).astype(np.float32)
b = np.random.rand(8, 6).astype(np.float32)

q = sgemm_u4.quantize(b)                  # per-column scale and zero point
c = np.zeros((4, 6), dtype=np.float32)
out = sgemm_u4.sgemm(a, q, c, alpha=1.0, beta=0.0)   # alpha * a @ dequant(q) + beta * c

packed = sgemm_u4.pack_b(q)
sgemm_u4.compute_gelu(a, packed, c)
```

`quantize` maps each column of `B` onto 16 levels: when the column has
negative values its minimum becomes the zero point, and the range is split
into 15 steps. Two codes along `K` share one byte. `trans_b=True` takes `B`
as `N × K`. The `quantization_rate` argument is accepted but does not change
the result.

The result functions return a new float32 array; `c` is read, not written.
The fused variants `compute_silu`, `compute_gelu`, `compute_biasadd`,
`compute_biasadd_relu`, `compute_residential`, `compute_resext` and
`compute_resmul` apply their extra step after the multiplication.
`small_sgemm` returns the plain product of `a` and the dequantized matrix.
`silu` and `gelu` are also available on their own. Mismatched shapes raise
`ValueError`.

## Library helpers

```python
from xdnn import library

library.get_version()              # "1.0.0"
library.initialize()               # True; library.is_initialized() is now True
library.hardware_capabilities()    # bit mask: 1 AVX, 2 AVX2, 4 AVX-512F, 8 AMX
library.convert_data([1.5], library.DataType.FP32, library.DataType.FP16)
```

`hardware_capabilities` reads the CPU flags from `/proc/cpuinfo` and returns
0 where that file is not available. `convert_data` handles FP32 to FP16,
FP16 to FP32 and a type to itself; other pairs raise `ValueError`.

## What is not included

- Matrix multiplication is provided only for float32 inputs against
  unsigned 4-bit weights. There is no float32, float16, bfloat16, int8, NF4
  or FP8 matrix multiplication.
- Everything runs on a single thread: `set_num_threads` only validates its
  argument and `get_num_threads` always returns 1.
- There is no command-line tool.

## Tests

```
pytest
```
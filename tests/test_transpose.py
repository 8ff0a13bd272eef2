import numpy as np
import pytest

from xdnn.dtypes import BFloat16, Float16
from xdnn.transpose import (
    transpose,
    transpose_16x16,
    transpose_16x32_pack,
    transpose_16xn,
    transpose_16xn_pack,
)

SHAPES = [(1, 1), (1, 16), (16, 1), (8, 8), (16, 32), (32, 16), (64, 64)]
HALF_SHAPES = [(1, 1), (1, 16), (16, 1), (8, 8), (16, 32), (32, 16)]


def _random(rows, cols, seed=0):
    rng = np.random.default_rng(seed)
    return rng.uniform(-1.0, 1.0, size=(rows, cols)).astype(np.float32)


@pytest.mark.parametrize("rows,cols", SHAPES)
def test_f32_transpose_elements(rows, cols):
    data = _random(rows, cols)
    out = transpose(data)
    assert out.shape == (cols, rows)
    assert out.dtype == np.float32
    for i, row in enumerate(data):
        for j, value in enumerate(row):
            assert out[j, i] == value


@pytest.mark.parametrize("rows,cols", SHAPES)
def test_f32_transpose_twice_is_identity(rows, cols):
    data = _random(rows, cols, seed=rows * 100 + cols)
    np.testing.assert_allclose(transpose(transpose(data)), data, atol=1e-6)


@pytest.mark.parametrize("rows,cols", HALF_SHAPES)
def test_fp16_transpose_twice(rows, cols):
    data = [[Float16(float(v)) for v in row] for row in _random(rows, cols, seed=1)]
    back = transpose(transpose(data))
    assert back.shape == (rows, cols)
    for orig_row, back_row in zip(data, back):
        for a, b in zip(orig_row, back_row):
            assert float(a) == pytest.approx(float(b), abs=1e-2)


@pytest.mark.parametrize("rows,cols", HALF_SHAPES)
def test_bf16_transpose_twice(rows, cols):
    data = [[BFloat16(float(v)) for v in row] for row in _random(rows, cols, seed=2)]
    back = transpose(transpose(data))
    assert back.shape == (rows, cols)
    for orig_row, back_row in zip(data, back):
        for a, b in zip(orig_row, back_row):
            assert float(a) == pytest.approx(float(b), abs=1e-2)


def test_identity_unchanged():
    identity = np.eye(16, dtype=np.float32)
    np.testing.assert_allclose(transpose(identity), identity, atol=1e-6)


def test_small_known_matrix():
    out = transpose([[1, 2, 3], [4, 5, 6]])
    assert out.tolist() == [[1, 4], [2, 5], [3, 6]]


def test_int_dtype_kept():
    data = np.arange(12, dtype=np.int32).reshape(3, 4)
    out = transpose(data)
    assert out.dtype == np.int32
    assert out.tolist() == data.T.tolist()


def test_result_is_independent_copy():
    data = np.zeros((2, 3), dtype=np.float32)
    out = transpose(data)
    out[0, 0] = 5.0
    assert data[0, 0] == 0.0


def test_rejects_non_matrix():
    with pytest.raises(ValueError):
        transpose([1.0, 2.0, 3.0])


def test_16x16():
    data = np.arange(256, dtype=np.int32).reshape(16, 16)
    out = transpose_16x16(data)
    assert out.dtype == np.int32
    assert out[3, 7] == data[7, 3]
    assert np.array_equal(transpose_16x16(out), data)


def test_16x16_wrong_shape():
    with pytest.raises(ValueError):
        transpose_16x16(np.zeros((16, 8), dtype=np.int32))


@pytest.mark.parametrize("cols", [1, 5, 16, 40])
def test_16xn(cols):
    data = np.arange(16 * cols, dtype=np.int32).reshape(16, cols)
    out = transpose_16xn(data)
    assert out.shape == (cols, 16)
    assert np.array_equal(out.T, data)


def test_16xn_wrong_rows():
    with pytest.raises(ValueError):
        transpose_16xn(np.zeros((8, 4), dtype=np.int32))


def test_16x32_pack_bf16():
    data = [[BFloat16(i - j / 4) for j in range(32)] for i in range(16)]
    out = transpose_16x32_pack(data)
    assert out.shape == (32, 16)
    assert float(out[5, 9]) == float(data[9][5])


def test_16x32_pack_wrong_shape():
    with pytest.raises(ValueError):
        transpose_16x32_pack(np.zeros((16, 16), dtype=np.float32))


def test_16xn_pack_fp16():
    data = [[Float16(i + j / 8) for j in range(10)] for i in range(16)]
    out = transpose_16xn_pack(data)
    assert out.shape == (10, 16)
    assert float(out[9, 15]) == float(data[15][9])


def test_16xn_pack_wrong_rows():
    with pytest.raises(ValueError):
        transpose_16xn_pack(np.zeros((4, 32), dtype=np.float32))
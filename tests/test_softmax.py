import math

import numpy as np
import pytest

from xdnn.dtypes import BFloat16
from xdnn.softmax import softmax_bf16, softmax_f32


@pytest.mark.parametrize("size", [1, 8, 16, 32, 64, 128, 256])
@pytest.mark.parametrize("scale", [1.0, 2.0, 0.5])
def test_f32_softmax_is_distribution(size, scale):
    rng = np.random.default_rng(size)
    data = rng.uniform(-2.0, 2.0, size).astype(np.float32)
    result = softmax_f32(data, scale)
    assert result.dtype == np.float32
    assert result.shape == (size,)
    assert float(result.sum()) == pytest.approx(1.0, abs=1e-4)
    assert np.all(result > 0)
    assert int(np.argmax(result)) == int(np.argmax(data))


@pytest.mark.parametrize("scale", [2.0, 0.5])
def test_f32_scale_matches_prescaled_input(scale):
    rng = np.random.default_rng(7)
    data = rng.uniform(-2.0, 2.0, 32).astype(np.float32)
    scaled = softmax_f32(data, scale)
    prescaled = softmax_f32(data * np.float32(scale), 1.0)
    np.testing.assert_allclose(scaled, prescaled, atol=1e-4)


def test_f32_shift_invariant():
    data = np.array([0.1, -0.4, 1.3, 0.7], dtype=np.float32)
    np.testing.assert_allclose(softmax_f32(data), softmax_f32(data + 5.0), atol=1e-5)


def test_f32_pinned_values():
    result = softmax_f32([0.0, math.log(3.0)])
    assert result[0] == pytest.approx(0.25, abs=1e-6)
    assert result[1] == pytest.approx(0.75, abs=1e-6)
    assert softmax_f32([3.5])[0] == 1.0


def test_f32_large_values():
    result = softmax_f32([1000.0 * i for i in range(8)], 1.0)
    assert result[-1] == pytest.approx(1.0, abs=1e-4)
    for value in result[:-1]:
        assert value == pytest.approx(0.0, abs=1e-4)


def test_f32_uniform_values():
    result = softmax_f32([1.0] * 8, 1.0)
    for value in result:
        assert value == pytest.approx(1.0 / 8, abs=1e-4)


def test_f32_does_not_modify_input():
    data = np.array([1.0, 2.0, 3.0], dtype=np.float32)
    softmax_f32(data)
    np.testing.assert_array_equal(data, np.array([1.0, 2.0, 3.0], dtype=np.float32))


def test_f32_rejects_empty_and_matrix():
    with pytest.raises(ValueError):
        softmax_f32([])
    with pytest.raises(ValueError):
        softmax_f32([[1.0, 2.0], [3.0, 4.0]])


@pytest.mark.parametrize("size", [1, 8, 16, 32, 64, 128])
@pytest.mark.parametrize("scale", [1.0, 2.0, 0.5])
def test_bf16_softmax_close_to_f32(size, scale):
    rng = np.random.default_rng(100 + size)
    data = [BFloat16(float(v)) for v in rng.uniform(-2.0, 2.0, size)]
    result = softmax_bf16(data, scale)
    reference = softmax_f32([float(v) for v in data], scale)
    assert len(result) == size
    assert all(isinstance(v, BFloat16) for v in result)
    for got, expected in zip(result, reference):
        assert float(got) == pytest.approx(float(expected), abs=1e-2)
    assert sum(float(v) for v in result) == pytest.approx(1.0, abs=2e-2)


def test_bf16_uniform_and_pinned():
    uniform = softmax_bf16([BFloat16(1.0)] * 8, 1.0)
    assert [float(v) for v in uniform] == [0.125] * 8
    pinned = softmax_bf16([0.0, math.log(3.0)])
    assert float(pinned[0]) == pytest.approx(0.25, abs=1e-2)
    assert float(pinned[1]) == pytest.approx(0.75, abs=1e-2)


def test_bf16_rejects_empty():
    with pytest.raises(ValueError):
        softmax_bf16([])
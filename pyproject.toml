[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xdnn"
version = "1.0.0"
description = "Reduced-precision number formats, 4-bit quantized matrix multiplication, softmax and transpose on NumPy"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["bfloat16", "float16", "fp8", "nf4", "quantization", "gemm", "softmax", "transpose"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["xdnn"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

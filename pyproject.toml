[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "uarchsim"
version = "0.1.0"
description = "Branch predictors, a branch target buffer and cache prefetchers for trace-driven processor simulation"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "microarchitecture",
    "simulation",
    "branch-prediction",
    "prefetching",
    "cache",
    "btb",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["uarchsim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"

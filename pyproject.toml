[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ngravsim"
version = "0.1.0"
description = "Building blocks for N-body simulations with several gravitational interactions: Peano-Hilbert ordering, periodic particle-mesh forces, potential corrections, snapshot and restart I/O."
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "n-body",
    "gravity",
    "particle-mesh",
    "peano-hilbert",
    "cosmology",
    "simulation",
    "snapshot",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Astronomy",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["ngravsim"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

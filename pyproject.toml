[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "yqlmodel"
version = "0.1.0"
description = "Simulation model of query-graph scheduling strategies across a server cluster"
requires-python = ">=3.10"
dependencies = []
keywords = ["scheduling", "simulation", "query graph", "cluster", "dataflow"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Information Analysis",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
yqlmodel = "yqlmodel.app:main"

[tool.hatch.build.targets.wheel]
packages = ["yqlmodel"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

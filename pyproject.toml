[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "runtimekit"
version = "0.1.0"
description = "In-memory blockchain runtime modules: events, storage maps, fixed point, balances, crowdfunds and an offchain worker"
requires-python = ">=3.10"
dependencies = [
    "pynacl",
]
keywords = ["blockchain", "runtime", "pallet", "crowdfund", "ringbuffer", "fixed-point", "offchain"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["runtimekit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

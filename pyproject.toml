[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "messaging"
version = "3.0.0"
description = "Broker-neutral messaging contracts with batching, serialization and transactional handler building blocks."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "messaging",
    "message-broker",
    "serialization",
    "retry",
    "transactions",
    "handlers",
]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["messaging"]

[tool.hatch.build.targets.sdist]
include = ["messaging", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

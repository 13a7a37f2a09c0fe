[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "azlsp"
version = "0.1.0"
description = "Azure resource schema validation, schema lookup and an in-memory document store for language tooling"
requires-python = ">=3.10"
dependencies = []
keywords = ["azure", "schema", "validation", "lsp", "documents", "editor-tooling"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
azlsp = "azlsp.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["azlsp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

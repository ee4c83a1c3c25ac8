[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sqzproxy"
version = "0.1.0"
description = "Building blocks for a prompt-compressing LLM proxy: request models, a SQLite rule store and admin endpoints"
requires-python = ">=3.10"
keywords = ["proxy", "llm", "prompt", "compression", "openai", "anthropic", "sqlite", "starlette"]
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
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Database",
]
dependencies = [
    "starlette",
]

[project.optional-dependencies]
test = [
    "pytest",
    "httpx",
]

[tool.hatch.build.targets.wheel]
packages = ["sqzproxy"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

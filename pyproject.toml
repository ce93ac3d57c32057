[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinyleakcheck"
version = "1.0.0"
description = "A tiny, standalone, thread-safe memory tracer and leak checker"
requires-python = ">=3.10"
dependencies = []
keywords = ["leak", "memory", "tracer", "debugging", "allocation", "stack trace"]
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
    "Topic :: Software Development :: Debuggers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tinyleakcheck-leaks = "tinyleakcheck.leaks_demo:main"
tinyleakcheck-threads = "tinyleakcheck.threads_demo:main"

[tool.hatch.build.targets.wheel]
packages = ["tinyleakcheck"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = true

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lunarlib"
version = "0.1.0"
description = "Lua 5.3 semantics in pure Python: hybrid tables, string patterns, string.format, binary pack/unpack, UTF-8 helpers, table functions, metamethod lookup and precompiled chunk loading"
requires-python = ">=3.10"
dependencies = []
keywords = ["lua", "patterns", "pack", "unpack", "utf8", "bytecode", "table"]
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
    "Topic :: Software Development :: Libraries",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["lunarlib"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pagetree"
version = "0.1.0"
description = "A copy-on-write B+tree of fixed-size byte pages with a pluggable page store"
requires-python = ">=3.10"
dependencies = []
keywords = ["btree", "b+tree", "database", "storage", "pages", "key-value"]
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
    "Topic :: Database :: Database Engines/Servers",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pagetree = "pagetree.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["pagetree"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

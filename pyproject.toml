[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pagedb"
version = "0.1.0"
description = "Paged B+ tree index files, query conditions and a line-oriented SQL client for a small relational database"
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "b+tree", "index", "storage", "sql", "client"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pagedb-client = "pagedb.client:main"

[tool.hatch.build.targets.wheel]
packages = ["pagedb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

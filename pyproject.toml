[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pgversiond"
version = "0.1.0"
description = "A small threaded HTTP/HTTPS server that answers every connection with the PostgreSQL server version"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "https", "server", "postgresql", "thread-pool", "tls"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pgversiond = "pgversiond.server:main"

[tool.hatch.build.targets.wheel]
packages = ["pgversiond"]

[tool.hatch.build.targets.sdist]
include = ["pgversiond", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true

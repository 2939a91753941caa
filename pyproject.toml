[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xkcdsearch"
version = "0.1.0"
description = "Full-text search over xkcd comics: fetching, word normalisation, ranking and a JSON HTTP API"
requires-python = ">=3.10"
keywords = ["xkcd", "search", "inverted-index", "stemming", "wsgi", "jwt"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Indexing/Search",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
]
dependencies = [
    "pyyaml>=6.0",
    "pyjwt>=2.8",
    "requests>=2.31",
    "werkzeug>=3.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "responses>=0.24",
]

[project.scripts]
xkcdsearch = "xkcdsearch.server:main"

[tool.hatch.build.targets.wheel]
packages = ["xkcdsearch"]

[tool.hatch.build.targets.sdist]
include = ["xkcdsearch", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
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

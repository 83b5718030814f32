[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gitatomizer"
version = "0.1.0"
description = "Show the latest commit on a branch and list tree changes between two branches of a git repository"
requires-python = ">=3.10"
dependencies = []
keywords = ["git", "diff", "tree", "commit", "branch"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
gitatomizer = "gitatomizer.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["gitatomizer"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "verstamp"
version = "0.1.0"
description = "Gather build, cargo, rustc, git and system details and emit them as cargo build-script instructions"
requires-python = ">=3.10"
dependencies = [
    "psutil",
]
keywords = [
    "build",
    "build-script",
    "cargo",
    "git",
    "version",
    "reproducible-builds",
    "source-date-epoch",
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
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["verstamp"]

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

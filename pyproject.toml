[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "otdrs"
version = "1.0.0"
description = "Read and write Telcordia/Bellcore SOR files from optical time-domain reflectometers, and convert them to JSON or CBOR"
requires-python = ">=3.10"
dependencies = [
    "cbor2",
]
keywords = ["otdr", "sor", "bellcore", "telcordia", "fibre", "fiber", "reflectometry", "json", "cbor"]
classifiers = [
    "Development Status :: 5 - Production/Stable",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
    "Topic :: File Formats",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
otdrs = "otdrs.convert:main"
wotdrs = "otdrs.rewrite:main"

[tool.hatch.build.targets.wheel]
packages = ["otdrs"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "amfcodec"
version = "0.1.0"
description = "A small AMF3 encoder and decoder for Python values, dataclasses and plain objects"
requires-python = ">=3.10"
dependencies = []
keywords = ["amf", "amf3", "serialization", "flash", "binary"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: File Formats",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["amfcodec"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

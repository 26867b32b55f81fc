[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "modularmidi"
version = "0.1.0"
description = "Serial and MIDI device discovery, a small HTTP backend and a command-line client for modular MIDI controllers"
requires-python = ">=3.10"
keywords = ["midi", "usb", "serial", "control-change", "http"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: MIDI",
]
dependencies = [
    "mido",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
modularmidi-server = "modularmidi.server:main"
modularmidi = "modularmidi.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["modularmidi"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

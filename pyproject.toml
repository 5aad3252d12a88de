[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "seqmc4"
version = "0.1.0"
description = "A four-channel, keyboard-driven MIDI step sequencer with tick-based events, repeat marks and patterns"
requires-python = ">=3.10"
dependencies = []
keywords = ["midi", "sequencer", "step-sequencer", "microcomposer", "music"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
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

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["seqmc4*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

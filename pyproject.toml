[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "psukit"
version = "0.1.0"
description = "Read, write and inspect PlayStation 2 save formats: PSU archives, ICN icons, icon.sys, title.cfg and memory card images"
requires-python = ">=3.11"
dependencies = []
keywords = ["ps2", "psu", "icn", "icon.sys", "title.cfg", "memory card", "save files"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: File Formats",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
psu-packer = "psukit.cli:main"
psu-memcard = "psukit.memcard:main"

[tool.hatch.build.targets.wheel]
packages = ["psukit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

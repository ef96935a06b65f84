[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chip8term"
version = "0.1.0"
description = "A CHIP-8 interpreter that draws to the terminal"
requires-python = ">=3.10"
dependencies = []
keywords = ["chip-8", "chip8", "emulator", "interpreter", "terminal"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
chip8term = "chip8term.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["chip8term"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

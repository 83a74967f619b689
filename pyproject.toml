[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "citybuilder"
version = "0.1.0"
description = "A small multiplayer city-building game with a TCP lobby server, roads, buildings and bus routes"
requires-python = ">=3.10"
keywords = ["game", "city-builder", "multiplayer", "simulation", "pygame"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Simulation",
]
dependencies = [
    "pygame",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
citybuilder = "citybuilder.app:main"

[tool.hatch.build.targets.wheel]
packages = ["citybuilder"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

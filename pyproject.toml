[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "apnaos"
version = "0.1.0"
description = "A small teaching kernel modelled in Python: heap, flat filesystem, keyboard, descriptor tables, scheduler and shell"
requires-python = ">=3.10"
dependencies = []
keywords = ["kernel", "operating-system", "scheduler", "filesystem", "simulation", "education"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Operating System",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
apnaos = "apnaos.shell:main"

[tool.hatch.build.targets.wheel]
packages = ["apnaos"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vonsim"
version = "0.1.0"
description = "A small Von Neumann / MIPS-style CPU and operating-system simulator: register bank, ALU, five-stage pipeline, cache, scheduler, I/O manager and a JSON program assembler."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "simulator",
    "mips",
    "cpu",
    "pipeline",
    "scheduler",
    "cache",
    "assembler",
    "operating-systems",
    "education",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
vonsim-assemble = "vonsim.assembler:main"
vonsim-io-demo = "vonsim.io_demo:main"

[tool.hatch.build.targets.wheel]
packages = ["vonsim"]

[tool.pytest.ini_options]
addopts = "-ra"

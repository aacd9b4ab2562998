[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rabbitsim"
version = "0.1.0"
description = "Behavioural models of memory-mapped peripherals for multiprocessor system simulation"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "simulation",
    "peripherals",
    "sram",
    "semaphore",
    "mailbox",
    "timer",
    "framebuffer",
    "block device",
    "mpsoc",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rabbitsim"]

[tool.pytest.ini_options]
addopts = "-ra"

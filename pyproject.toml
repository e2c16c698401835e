[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mojit"
version = "0.1.0"
description = "Guest-process plumbing for an aarch64 Linux sandbox: guest memory interfaces, network policy gate, stat wire formats, ELF load planning and initial stack layout"
requires-python = ">=3.10"
dependencies = []
keywords = ["aarch64", "elf", "loader", "sandbox", "syscall", "auxv", "network-policy"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
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
packages = ["mojit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

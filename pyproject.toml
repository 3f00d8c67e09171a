[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tegraboot"
version = "0.1.0"
description = "Library for checking and updating Tegra boot partitions: version blocks, update ordering and BCT writes"
requires-python = ">=3.10"
dependencies = []
keywords = ["tegra", "jetson", "bootloader", "bct", "boot-partition", "firmware-update"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Boot",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tegraboot"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

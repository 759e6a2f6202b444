[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vcpuboot"
version = "0.1.0"
description = "Build x86_64 boot structures for virtual CPUs: GDT, MP table, LAPIC registers, CPUID and MSR entries"
requires-python = ">=3.10"
dependencies = []
keywords = ["virtualization", "x86_64", "gdt", "mptable", "cpuid", "msr", "lapic", "boot"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
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
packages = ["vcpuboot"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

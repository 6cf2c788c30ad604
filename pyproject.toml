[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "devopstool"
version = "1.0.0"
description = "Command-line helper for inspecting and cleaning Kubernetes storage resources"
requires-python = ">=3.10"
keywords = ["kubernetes", "storage", "persistent-volume", "storageclass", "devops", "cli"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "requests",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
devops-tool = "devopstool.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["devopstool"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zapcore"
version = "0.1.0"
description = "Structured, leveled logging core with JSON and console encoders"
requires-python = ">=3.11"
dependencies = []
keywords = ["logging", "structured-logging", "json", "encoder", "levels"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["zapcore"]

[tool.pytest.ini_options]
addopts = "-ra"

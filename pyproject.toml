[build-system]
requires = ["setuptools>=61.0"]
build-backend = "setuptools.build_meta"

[project]
name = "eventmesh"
version = "0.1.0"
description = "Event mesh server building blocks: YAML configuration, structured logging with rolling log files, TCP protocol definitions, service naming and a webhook receiver."
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "eventmesh",
    "logging",
    "rolling-log",
    "log-rotation",
    "configuration",
    "webhook",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
eventmesh-webhook = "eventmesh.webhook:main"

[tool.setuptools]
packages = ["eventmesh"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "based"
version = "0.1.0"
description = "An in-memory hierarchical key-value tree with a minimal HTTP/1.0 server"
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "tree", "key-value", "http", "server"]
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
    "Topic :: Database :: Database Engines/Servers",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
based = "based.demo:main"
based-server = "based.server:main"

[tool.hatch.build.targets.wheel]
packages = ["based"]

[tool.pytest.ini_options]
addopts = "-ra"

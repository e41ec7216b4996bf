[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kisserve"
version = "0.2.1"
description = "A small static file server that preloads its content and responses into memory"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "static", "server", "asyncio", "etag", "cache"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[project.scripts]
kisserve = "kisserve.server:main"

[tool.hatch.build.targets.wheel]
packages = ["kisserve"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

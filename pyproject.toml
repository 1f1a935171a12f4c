[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gochat"
version = "0.1.0"
description = "Instant-messaging core: a WebSocket message server with acknowledgement modes, a JSON client, and MongoDB-backed chat logs and conversations"
requires-python = ">=3.10"
keywords = ["chat", "instant messaging", "websocket", "mongodb", "acknowledgement"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Framework :: AsyncIO",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]
dependencies = [
    "websockets",
    "pymongo",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["gochat"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

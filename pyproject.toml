[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fdfsmigrate"
version = "0.1.0"
description = "Toolkit for migrating files between FastDFS clusters: protocol client, connection pooling, cluster health checks, data models and a small HTTP server"
requires-python = ">=3.10"
keywords = ["fastdfs", "migration", "mirroring", "storage", "distributed-filesystem"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Mirroring",
    "Topic :: System :: Filesystems",
]
dependencies = [
    "flask",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
fdfsmigrate = "fdfsmigrate.server:main"

[tool.hatch.build.targets.wheel]
packages = ["fdfsmigrate"]

[tool.pytest.ini_options]
addopts = "-ra"

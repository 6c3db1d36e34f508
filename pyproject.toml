[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ostepkit"
version = "0.1.0"
description = "Teaching operating-system tools: a small HTTP server and client, classic text utilities, and an in-memory model of a simple Unix file system."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "operating-systems",
    "teaching",
    "http-server",
    "cgi",
    "run-length-encoding",
    "grep",
    "file-system",
    "buffer-cache",
    "redo-log",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: System :: Operating System",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
wserver = "ostepkit.server:main"
wclient = "ostepkit.client:main"
wspin = "ostepkit.spin:main"
wcat = "ostepkit.wcat:main"
wgrep = "ostepkit.wgrep:main"
wzip = "ostepkit.rle:zip_main"
wunzip = "ostepkit.rle:unzip_main"
kpgrep = "ostepkit.kpgrep:main"
mkfs-xv6 = "ostepkit.mkfs:main"

[tool.hatch.build.targets.wheel]
packages = ["ostepkit"]

[tool.hatch.build.targets.sdist]
include = ["ostepkit", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true

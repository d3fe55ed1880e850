[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "amalgamate"
version = "1.0.1"
description = "Recursively combine C++ source files and the headers they include into a single output file."
requires-python = ">=3.10"
dependencies = []
keywords = ["cpp", "c++", "amalgamation", "single-file", "competitive-programming", "preprocessor"]
classifiers = [
    "Development Status :: 5 - Production/Stable",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Programming Language :: C++",
    "Topic :: Software Development :: Pre-processors",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
amalgamate = "amalgamate.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["amalgamate"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "arthaledger"
version = "0.1.0"
description = "Personal finance ledger library: transactions, categories, keyword auto-categorization rules, monthly reports and bearer-token checks"
requires-python = ">=3.10"
keywords = [
    "finance",
    "ledger",
    "accounting",
    "budgeting",
    "transactions",
    "categorization",
    "reports",
    "sqlite",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Accounting",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pyjwt>=2.6",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "freezegun>=1.2",
]

[tool.hatch.build.targets.wheel]
packages = ["arthaledger"]

[tool.hatch.build.targets.sdist]
include = ["arthaledger", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
no_implicit_optional = true

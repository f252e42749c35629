"""Nox sessions for SHON.

    nox -s lint       ruff, basedpyright and codespell over src/ and tests/
    nox -s unit       pytest with coverage on every supported Python
    nox -s coverage   report (or `coverage -- xml`) from the unit runs
"""

import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]
LOCATIONS = ["src", "tests"]


@nox.session(python=PYTHON_VERSIONS[-1])
def lint(session: nox.Session) -> None:
    """Run linting and type checking."""
    session.install(".", "ruff", "basedpyright", "codespell")
    session.run("ruff", "check", *LOCATIONS)
    session.run("ruff", "format", "--check", *LOCATIONS)
    session.run("basedpyright", "src")
    session.run("codespell", "src", "tests")


@nox.session(python=PYTHON_VERSIONS)
def unit(session: nox.Session) -> None:
    """Run unit tests."""
    session.install(".[test]", "pytest-sugar")
    session.run(
        "pytest",
        "--cov=shon",
        "--cov-report=term-missing",
        *session.posargs,
    )


@nox.session(python=PYTHON_VERSIONS[-1])
def coverage(session: nox.Session) -> None:
    """Generate coverage report."""
    session.install("coverage[toml]")
    if session.posargs and session.posargs[0] == "xml":
        session.run("coverage", "xml")
    else:
        session.run("coverage", "report", "--show-missing")

import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13", "3.14"]

nox.options.sessions = ["tests", "bdd"]

# Rebuilt per interpreter; the poetry wheel cache can hand back a .so for another Python.
_C_EXT_PACKAGES = ["psycopg2"]


def _install(session: nox.Session, *extras: str) -> None:
    """Install the shipping project plus the requested extras with poetry."""
    args = ["poetry", "install", "--with", "test"]
    for extra in extras:
        args += ["--extras", extra]
    session.run(*args, external=True)
    if "production" in extras:
        session.run("pip", "install", "--force-reinstall", "--no-cache-dir", *_C_EXT_PACKAGES)


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Full suite against the in-memory adapters."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
@nox.parametrize("layer", ["domain", "application", "integration"])
def layer(session: nox.Session, layer: str) -> None:
    """One layer at a time, selected by the directory marker."""
    _install(session)
    session.run("pytest", "-m", layer, *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def bdd(session: nox.Session) -> None:
    """Dispatch behaviour scenarios (task lifecycle, delivery options, route planning)."""
    _install(session)
    session.run("pytest", "-m", "bdd", "-v", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def production(session: nox.Session) -> None:
    """Full suite with PROTEAN_ENV=production; needs Postgres and Redis up."""
    _install(session, "production")
    session.run("pytest", "--env", "production", *session.posargs)


@nox.session(python=PYTHON_VERSIONS[-1])
def loadtest(session: nox.Session) -> None:
    """Headless Locust run against a running server.

    nox -s loadtest -- http://localhost:8000
    """
    host = session.posargs[0] if session.posargs else "http://localhost:8000"
    _install(session, "loadtest")
    session.run(
        "locust",
        "-f",
        "loadtests/locustfile.py",
        "--headless",
        "--users",
        "20",
        "--spawn-rate",
        "5",
        "--run-time",
        "1m",
        "--host",
        host,
    )

import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]

nox.options.default_venv_backend = "uv"
nox.options.sessions = ["tests"]


def sync(session: nox.Session, *extras: str) -> None:
    extra_args = [arg for extra in extras for arg in ("--extra", extra)]
    session.run_install(
        "uv",
        "sync",
        *extra_args,
        env={"UV_PROJECT_ENVIRONMENT": session.virtualenv.location},
    )


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    sync(session, "test")
    session.run(
        "pytest",
        "--cov=reflectql",
        "--cov-report=term-missing",
        "--cov-fail-under=90",
        *session.posargs,
    )


@nox.session(python=PYTHON_VERSIONS[-1])
def sdl(session: nox.Session) -> None:
    """Print the SDL of a root given as 'module:attribute', e.g. `nox -s sdl -- myapp.schema:Query`."""
    sync(session)
    if not session.posargs:
        session.error("Pass the query root as 'module:attribute' after '--'")
    session.run("reflectql", "export", "sdl", "--query", *session.posargs)

import nox

nox.needs_version = ">=2024.4.15"
nox.options.default_venv_backend = "uv|virtualenv"


@nox.session
def tests(session: nox.Session) -> None:
    session.install("-e.[test]")
    session.run("pytest", "tests", *session.posargs)


@nox.session
@nox.parametrize("editable", [True, False])
def install(session: nox.Session, editable: bool) -> None:
    session.install("-e." if editable else ".")
    # The package must import without any of the test dependencies around.
    assert "lambda_multipart" in session.run(
        "python", "-c", "import lambda_multipart; print(lambda_multipart.__name__)", silent=True
    )
    assert "MissingContentTypeHeader" in session.run(
        "python",
        "-c",
        "import lambda_multipart\n"
        "try:\n"
        "    lambda_multipart.parse_event({'body': ''})\n"
        "except lambda_multipart.FormDataError as e:\n"
        "    print(type(e).__name__)",
        silent=True,
    )

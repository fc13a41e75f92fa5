import glob

from invoke import run, task


@task
def test(ctx):
    test_cmd = [
        "pytest",  # Test command
        "--cov-report term-missing",  # Print only uncovered lines to stdout
        "--cov lambda_multipart",  # Test only this package
        "--timeout=30",  # Each test should timeout after 30 sec
    ]

    # Test in this directory
    test_cmd.append("tests")

    run(" ".join(test_cmd), pty=False)


@task
def fuzz(ctx, runs=10000):
    # Each harness is an atheris entry point; -runs bounds how long it goes.
    for harness in sorted(glob.glob("fuzz/fuzz_*.py")):
        run(f"python {harness} -runs={runs}", pty=False)

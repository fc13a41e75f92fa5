import sys

import atheris
from helpers import EnhancedDataProvider

with atheris.instrument_imports():
    from lambda_multipart.events import get_boundary
    from lambda_multipart.exceptions import FormDataError
    from lambda_multipart.multipart import parse_options_header


def fuzz_options_header(fdp: EnhancedDataProvider) -> None:
    try:
        parse_options_header(fdp.ConsumeRandomBytes())
    except AssertionError:
        return
    except TypeError:
        return


def fuzz_boundary(fdp: EnhancedDataProvider) -> None:
    try:
        get_boundary({"Content-Type": fdp.ConsumeRandomString()})
    except FormDataError:
        return


def TestOneInput(data: bytes) -> None:
    fdp = EnhancedDataProvider(data)
    target = fdp.PickValueInList([fuzz_options_header, fuzz_boundary])
    target(fdp)


def main():
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()

import base64
import sys

import atheris
from helpers import EnhancedDataProvider

with atheris.instrument_imports():
    from lambda_multipart.events import parse_event
    from lambda_multipart.exceptions import FormDataError


def parse_random_event(fdp: EnhancedDataProvider) -> None:
    event = {
        "headers": fdp.ConsumeHeaders(),
        "isBase64Encoded": fdp.ConsumeBool(),
        "body": fdp.ConsumeRandomString(),
    }
    parse_event(event)


def parse_multipart_form_data(fdp: EnhancedDataProvider) -> None:
    boundary = "boundary"
    body = (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="file"; filename="{fdp.ConsumeUnicodeNoSurrogates(16)}"\r\n\r\n'
        f"{fdp.ConsumeRandomString()}\r\n"
        f"--{boundary}--\r\n"
    )
    headers = {"Content-Type": f"multipart/form-data; boundary={boundary}"}
    if fdp.ConsumeBool():
        event = {"headers": headers, "isBase64Encoded": True, "body": base64.b64encode(body.encode()).decode()}
    else:
        event = {"headers": headers, "isBase64Encoded": False, "body": body}
    parse_event(event)


def TestOneInput(data: bytes) -> None:
    fdp = EnhancedDataProvider(data)
    targets = [parse_random_event, parse_multipart_form_data]
    target = fdp.PickValueInList(targets)

    try:
        target(fdp)
    except FormDataError:
        return


def main():
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()

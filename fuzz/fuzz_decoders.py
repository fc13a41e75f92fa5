import io
import sys

import atheris
from helpers import EnhancedDataProvider

with atheris.instrument_imports():
    from lambda_multipart.decoders import Base64Decoder, QuotedPrintableDecoder
    from lambda_multipart.events import normalize_body
    from lambda_multipart.exceptions import DecodeError, InvalidTransportEncoding


def fuzz_base64_decoder(fdp: EnhancedDataProvider) -> None:
    decoder = Base64Decoder(io.BytesIO())
    decoder.write(fdp.ConsumeRandomBytes())
    decoder.finalize()


def fuzz_quoted_decoder(fdp: EnhancedDataProvider) -> None:
    decoder = QuotedPrintableDecoder(io.BytesIO())
    decoder.write(fdp.ConsumeRandomBytes())
    decoder.finalize()


def fuzz_transport_encoding(fdp: EnhancedDataProvider) -> None:
    normalize_body(fdp.ConsumeRandomString(), True)


def TestOneInput(data: bytes) -> None:
    fdp = EnhancedDataProvider(data)
    targets = [fuzz_base64_decoder, fuzz_quoted_decoder, fuzz_transport_encoding]
    target = fdp.PickValueInList(targets)

    try:
        target(fdp)
    except (DecodeError, InvalidTransportEncoding):
        return


def main():
    atheris.Setup(sys.argv, TestOneInput)
    atheris.Fuzz()


if __name__ == "__main__":
    main()

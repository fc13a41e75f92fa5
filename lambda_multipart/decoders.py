from __future__ import annotations

import base64
import binascii
from typing import TYPE_CHECKING

from .exceptions import DecodeError

if TYPE_CHECKING:  # pragma: no cover
    from typing import Protocol, TypeVar

    _T_contra = TypeVar("_T_contra", contravariant=True)

    class SupportsWrite(Protocol[_T_contra]):
        def write(self, __b: _T_contra) -> object: ...


class _PartDecoder:
    """Wraps the object a part's payload is written to, and reverses the
    part's Content-Transfer-Encoding on the way through.

    Subclasses keep whatever tail of the input they can't decode yet in
    ``cache``, and flush it from :meth:`finalize`.
    """

    def __init__(self, underlying: SupportsWrite[bytes]) -> None:
        self.cache = b""
        self.underlying = underlying

    def write(self, data: bytes) -> int:  # pragma: no cover
        raise NotImplementedError

    def _flush(self) -> None:  # pragma: no cover
        raise NotImplementedError

    def close(self) -> None:
        if hasattr(self.underlying, "close"):
            self.underlying.close()

    def finalize(self) -> None:
        self._flush()

        if hasattr(self.underlying, "finalize"):
            self.underlying.finalize()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(underlying={self.underlying!r})"


class Base64Decoder(_PartDecoder):
    """Decodes a ``Content-Transfer-Encoding: base64`` payload.

    Base64 can only be decoded in groups of four characters, so anything left
    over is cached until the next write.  Line breaks between encoded lines
    are dropped before grouping.

    :param underlying: the object to write decoded data to
    """

    def write(self, data: bytes) -> int:
        written = len(data)
        data = self.cache + bytes(data).translate(None, b"\r\n")

        decode_len = (len(data) // 4) * 4
        val = data[:decode_len]

        if len(val) > 0:
            try:
                decoded = base64.b64decode(val, validate=True)
            except binascii.Error:
                raise DecodeError("There was an error raised while decoding base64-encoded data.")

            self.underlying.write(decoded)

        self.cache = data[decode_len:]
        return written

    def _flush(self) -> None:
        if len(self.cache) > 0:
            raise DecodeError(
                "There are %d bytes remaining in the Base64Decoder cache when finalize() is called" % len(self.cache)
            )


class QuotedPrintableDecoder(_PartDecoder):
    """Decodes a ``Content-Transfer-Encoding: quoted-printable`` payload.

    :param underlying: the object to write decoded data to
    """

    def write(self, data: bytes) -> int:
        written = len(data)
        data = self.cache + data

        # An escape is "=XX" or a soft line break "=\r\n".  If an "=" sits in
        # the last two bytes, hold it back until the rest of it arrives.
        split = data.rfind(b"=", max(len(data) - 2, 0))
        if split < 0:
            split = len(data)
        enc, rest = data[:split], data[split:]

        if len(enc) > 0:
            self.underlying.write(binascii.a2b_qp(enc))

        self.cache = rest
        return written

    def _flush(self) -> None:
        if len(self.cache) > 0:
            self.underlying.write(binascii.a2b_qp(self.cache))
            self.cache = b""

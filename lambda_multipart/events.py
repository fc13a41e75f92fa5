"""Reading multipart/form-data out of API Gateway proxy request events.

A Lambda proxy integration hands the function the request body as a single
string, flagged with ``isBase64Encoded`` when the gateway had to wrap it, and
a plain mapping of headers.  :func:`parse_event` takes such an event through
three steps::

    headers -> get_boundary()
    body    -> normalize_body()
    both    -> parse_form_data() -> FormData
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING

from .exceptions import InvalidContentTypeHeader, InvalidTransportEncoding, MissingContentTypeHeader
from .multipart import FormParser, parse_form_data, parse_options_header

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Mapping
    from typing import Any

    from .multipart import FormData

logger = logging.getLogger(__name__)


class ProxyRequest:
    """The parts of a proxy request event that a form is decoded from.

    :param body: the request body, as delivered by the gateway
    :param is_base64_encoded: whether the gateway base64-encoded the body
    :param headers: the request headers; looked up case-insensitively
    """

    __slots__ = ("body", "is_base64_encoded", "headers")

    def __init__(
        self,
        body: str | bytes | None = None,
        is_base64_encoded: bool = False,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.body = body if body is not None else ""
        self.is_base64_encoded = is_base64_encoded
        self.headers = dict(headers or {})

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> ProxyRequest:
        """Build a request from a raw Lambda proxy event (REST or HTTP API).
        Missing keys and null values are treated as empty.
        """
        return cls(
            body=event.get("body"),
            is_base64_encoded=bool(event.get("isBase64Encoded")),
            headers=event.get("headers"),
        )

    def __repr__(self) -> str:
        return "{}(is_base64_encoded={!r}, headers={!r}, body_length={})".format(
            self.__class__.__name__, self.is_base64_encoded, self.headers, len(self.body)
        )


def find_header(headers: Mapping[str, str], name: str) -> str | None:
    """Return the value of the header ``name``, matched case-insensitively,
    or None.
    """
    name = name.lower()
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def get_boundary(headers: Mapping[str, str] | None) -> bytes:
    """Return the multipart boundary declared in the Content-Type header.

    Raises :class:`MissingContentTypeHeader` when there is no Content-Type
    header, and :class:`InvalidContentTypeHeader` when it is not a multipart
    type with a non-empty ``boundary`` parameter.
    """
    content_type = find_header(headers or {}, "content-type")
    if content_type is None:
        raise MissingContentTypeHeader("No Content-Type header given")

    try:
        ctype, params = parse_options_header(content_type)
    except ValueError as e:
        raise InvalidContentTypeHeader(f"Unparseable Content-Type header: {content_type!r}") from e

    if not ctype.startswith(b"multipart/"):
        raise InvalidContentTypeHeader(f"Expected a multipart Content-Type, got: {content_type!r}")

    boundary = params.get(b"boundary")
    if not boundary:
        raise InvalidContentTypeHeader(f"No boundary in Content-Type header: {content_type!r}")

    return boundary


def normalize_body(body: str | bytes, is_base64_encoded: bool, encoding: str = "utf-8") -> bytes:
    """Return the body as bytes, ready to be split into parts.

    A base64-encoded body is decoded strictly; line breaks are the only
    characters skipped.  Anything else that is not base64 raises
    :class:`InvalidTransportEncoding`.  Text bodies are encoded with
    ``encoding``.
    """
    if not is_base64_encoded:
        if isinstance(body, bytes):
            return body
        return body.encode(encoding)

    if isinstance(body, bytes):
        body = body.decode("latin-1")

    try:
        return base64.b64decode(body.replace("\r", "").replace("\n", ""), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidTransportEncoding(f"Failed to read base64 body: {e}") from e


def parse_event(event: ProxyRequest | Mapping[str, Any], config: Mapping[str, Any] | None = None) -> FormData:
    """Decode the multipart/form-data body of a proxy request event.

    The decode is all-or-nothing: any problem with the headers, the transport
    encoding or the body raises a :class:`~lambda_multipart.exceptions.FormDataError`
    and no form data is returned.

    :param event: a :class:`ProxyRequest`, or the raw event mapping
    :param config: overrides for :attr:`FormParser.DEFAULT_CONFIG`
    """
    if not isinstance(event, ProxyRequest):
        event = ProxyRequest.from_event(event)

    config = config or {}
    encoding = config.get("ENCODING", FormParser.DEFAULT_CONFIG["ENCODING"])

    boundary = get_boundary(event.headers)
    body = normalize_body(event.body, event.is_base64_encoded, encoding)
    form = parse_form_data(body, boundary, config)

    logger.debug("Decoded %d fields and %d files from a %d byte body", len(form.fields), len(form.files), len(body))
    return form

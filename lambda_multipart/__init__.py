__version__ = "1.0.0"

from .events import ProxyRequest, find_header, get_boundary, normalize_body, parse_event
from .exceptions import (
    DecodeError,
    FileError,
    FormDataError,
    InvalidContentTypeHeader,
    InvalidTransportEncoding,
    MalformedMultipartBody,
    MissingContentTypeHeader,
    RequestBodyTooLarge,
)
from .multipart import (
    MAX_FORM_DATA_SIZE,
    BaseParser,
    Field,
    File,
    FormData,
    FormParser,
    MultipartParser,
    parse_form_data,
    parse_options_header,
)

__all__ = (
    "MAX_FORM_DATA_SIZE",
    "BaseParser",
    "DecodeError",
    "Field",
    "File",
    "FileError",
    "FormData",
    "FormDataError",
    "FormParser",
    "InvalidContentTypeHeader",
    "InvalidTransportEncoding",
    "MalformedMultipartBody",
    "MissingContentTypeHeader",
    "MultipartParser",
    "ProxyRequest",
    "RequestBodyTooLarge",
    "find_header",
    "get_boundary",
    "normalize_body",
    "parse_event",
    "parse_form_data",
    "parse_options_header",
)

class FormDataError(ValueError):
    """Base error class for everything that can go wrong while decoding a
    form out of a proxy request event.
    """


class MissingContentTypeHeader(FormDataError):
    """Raised when the event has no ``Content-Type`` header, under any
    capitalization.
    """


class InvalidContentTypeHeader(FormDataError):
    """Raised when the ``Content-Type`` header is present, but is not a
    multipart type or does not carry a usable ``boundary`` parameter.
    """


class InvalidTransportEncoding(FormDataError):
    """Raised when the event is flagged as base64-encoded but the body is not
    valid base64.
    """


class RequestBodyTooLarge(FormDataError):
    """Raised when the decoded body is larger than the configured
    ``MAX_BODY_SIZE``.
    """


class MalformedMultipartBody(FormDataError):
    """This exception (or a subclass) is raised when the body does not follow
    the multipart grammar for the given boundary.
    """

    #: This is the offset in the input data chunk (*NOT* the overall stream) in
    #: which the parse error occurred.  It will be -1 if not specified.
    offset = -1


class DecodeError(MalformedMultipartBody):
    """This exception is raised when a part's Content-Transfer-Encoding can't
    be reversed - for example with the Base64Decoder.
    """


class FileError(FormDataError, OSError):
    """Exception class for problems with the File class."""

from __future__ import annotations

import logging
from email.message import Message
from enum import IntEnum
from io import BytesIO
from types import MappingProxyType
from typing import TYPE_CHECKING, cast

from .decoders import Base64Decoder, QuotedPrintableDecoder
from .exceptions import FileError, MalformedMultipartBody, RequestBodyTooLarge

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Callable, Mapping
    from typing import Any, Literal, TypeAlias, TypedDict

    class MultipartCallbacks(TypedDict, total=False):
        on_part_begin: Callable[[], None]
        on_part_data: Callable[[bytes, int, int], None]
        on_part_end: Callable[[], None]
        on_header_begin: Callable[[], None]
        on_header_field: Callable[[bytes, int, int], None]
        on_header_value: Callable[[bytes, int, int], None]
        on_header_continue: Callable[[], None]
        on_header_end: Callable[[], None]
        on_headers_finished: Callable[[], None]
        on_end: Callable[[], None]

    class FormParserConfig(TypedDict):
        MAX_BODY_SIZE: float
        ENCODING: str
        DEFAULT_CONTENT_TYPE: str
        ERROR_ON_BAD_CTE: bool

    OnFieldCallback = Callable[["Field"], None]
    OnFileCallback = Callable[["File"], None]

    CallbackName: TypeAlias = Literal[
        "part_begin",
        "part_data",
        "part_end",
        "header_begin",
        "header_field",
        "header_value",
        "header_continue",
        "header_end",
        "headers_finished",
        "end",
    ]


# The documented ceiling for a form body (10 MiB).  Not enforced unless passed
# as MAX_BODY_SIZE.
MAX_FORM_DATA_SIZE = 10 * 1024 * 1024


class MultipartState(IntEnum):
    """Multipart parser states.

    These states are used to track the state of the parser, and are used to
    determine what to do when new data is encountered.
    """

    START = 0
    START_BOUNDARY = 1
    PREAMBLE = 2
    HEADER_FIELD_START = 3
    HEADER_FIELD = 4
    HEADER_VALUE_START = 5
    HEADER_VALUE = 6
    HEADER_VALUE_ALMOST_DONE = 7
    HEADERS_ALMOST_DONE = 8
    PART_DATA_START = 9
    PART_DATA = 10
    END_BOUNDARY = 11
    END = 12


# Flags for the multipart parser.
FLAG_PART_BOUNDARY = 1
FLAG_LAST_BOUNDARY = 2
FLAG_HEADER_SEEN = 4

# Get constants.  Iterating over a bytes object gives integers.
CR = b"\r"[0]
LF = b"\n"[0]
COLON = b":"[0]
SPACE = b" "[0]
HTAB = b"\t"[0]
HYPHEN = b"-"[0]

# fmt: off
# Mask for ASCII characters that can be http tokens.
# Per RFC7230 - 3.2.6, this is all alpha-numeric characters
# and these: !#$%&'*+-.^_`|~
TOKEN_CHARS_SET = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    b"abcdefghijklmnopqrstuvwxyz"
    b"0123456789"
    b"!#$%&'*+-.^_`|~")
# fmt: on


def parse_options_header(value: str | bytes | None) -> tuple[bytes, dict[bytes, bytes]]:
    """Parses a Content-Type (or Content-Disposition) header into a value in
    the following format: (content_type, {parameters}).

    Parameter names are lower-cased, quoted values are unquoted.  Values are
    returned exactly as sent otherwise: a ``filename`` keeps any path it was
    given.
    """
    # Uses email.message.Message to parse the header as described in PEP 594.
    # Ref: https://peps.python.org/pep-0594/#cgi
    if not value:
        return (b"", {})

    # If we are passed bytes, we assume that it conforms to WSGI, encoding in latin-1.
    if isinstance(value, bytes):  # pragma: no cover
        value = value.decode("latin-1")

    # If we have no options, return the string as-is.
    if ";" not in value:
        return (value.lower().strip().encode("latin-1"), {})

    # Split at the first semicolon, to get our value and then options.
    message = Message()
    message["content-type"] = value
    params = message.get_params()
    # If there were no parameters, this would have already returned above
    assert params, "At least the content type value should be present"
    ctype = params.pop(0)[0].lower().encode("latin-1")
    options: dict[bytes, bytes] = {}
    for param in params:
        key, value = param
        # If the value returned from get_params() is a 3-tuple, the last
        # element corresponds to the value.
        # See: https://docs.python.org/3/library/email.compat32-message.html
        if isinstance(value, tuple):
            value = value[-1]

        options[key.encode("latin-1")] = value.encode("latin-1")
    return ctype, options


class Field:
    """A Field object represents a (parsed) form field.  It collects the raw
    bytes of the part; :class:`FormData` stores the decoded text.

    :param name: the name of the form field
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._value: list[bytes] = []

        # We cache the joined version of _value for speed.
        self._cache = _missing

    def write(self, data: bytes) -> int:
        """Write some data into the form field.

        :param data: a bytestring
        """
        return self.on_data(data)

    def on_data(self, data: bytes) -> int:
        """This method is a callback that will be called whenever data is
        written to the Field.

        :param data: a bytestring
        """
        self._value.append(data)
        self._cache = _missing
        return len(data)

    def on_end(self) -> None:
        """This method is called whenever the Field is finalized."""
        if self._cache is _missing:
            self._cache = b"".join(self._value)

    def finalize(self) -> None:
        """Finalize the form field."""
        self.on_end()

    def close(self) -> None:
        """Close the Field object.  This will free any underlying cache."""
        # Free our value array.
        if self._cache is _missing:
            self._cache = b"".join(self._value)

        del self._value

    @property
    def field_name(self) -> str:
        """This property returns the name of the field."""
        return self._name

    @property
    def value(self) -> bytes:
        """This property returns the value of the form field."""
        if self._cache is _missing:
            self._cache = b"".join(self._value)

        assert isinstance(self._cache, bytes)
        return self._cache

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Field):
            return self.field_name == other.field_name and self.value == other.value
        else:
            return NotImplemented

    def __repr__(self) -> str:
        if len(self.value) > 97:
            # We get the repr, and then insert three dots before the final
            # quote.
            v = repr(self.value[:97])[:-1] + "...'"
        else:
            v = repr(self.value)

        return f"{self.__class__.__name__}(field_name={self.field_name!r}, value={v})"


class File:
    """This class represents an uploaded file.  While the body is parsed, data
    is written to an in-memory buffer; once finalized the content is frozen
    and can be consumed sequentially through :meth:`read`.

    The read cursor belongs to this object alone.  It starts at 0, only moves
    forward, and reading past the end returns ``b""``.

    :param filename: the file name as declared by the sender
    :param field_name: the name of the form field this file was uploaded with
    :param content_type: the declared content type of the file
    """

    def __init__(self, filename: str, field_name: str | None = None, content_type: str | None = None) -> None:
        self.logger = logging.getLogger(__name__)
        self._bytes_written = 0
        self._fileobj: BytesIO | None = BytesIO()
        self._content: bytes | None = None
        self._position = 0

        self._field_name = field_name
        self._filename = filename
        self._content_type = content_type

    @property
    def field_name(self) -> str | None:
        """The form field associated with this file."""
        return self._field_name

    @property
    def filename(self) -> str:
        """The file name given in the upload request."""
        return self._filename

    @property
    def content_type(self) -> str | None:
        """The Content-Type of the file, as declared for the part."""
        return self._content_type

    @property
    def size(self) -> int:
        """The number of bytes written to this file."""
        return self._bytes_written

    @property
    def content(self) -> bytes:
        """The complete content of the file.  Independent of the read cursor."""
        if self._content is None:
            raise FileError("File %r has not been finalized" % self._filename)
        return self._content

    def write(self, data: bytes) -> int:
        """Write some data to the File.

        :param data: a bytestring
        """
        return self.on_data(data)

    def on_data(self, data: bytes) -> int:
        """This method is a callback that will be called whenever data is
        written to the File.

        :param data: a bytestring
        """
        if self._fileobj is None:
            raise FileError("Cannot write to finalized file %r" % self._filename)

        bwritten = self._fileobj.write(data)

        # Keep track of how many bytes we've written.
        self._bytes_written += bwritten
        return bwritten

    def on_end(self) -> None:
        """This method is called whenever the File is finalized."""
        if self._fileobj is None:
            return

        self._content = self._fileobj.getvalue()
        self._fileobj.close()
        self._fileobj = None

    def finalize(self) -> None:
        """Finalize the file.  No more data can be written afterwards."""
        self.on_end()

    def close(self) -> None:
        """Close the file.  Finalizes it if that has not happened yet."""
        self.on_end()

    def read(self, size: int | None = -1) -> bytes:
        """Read up to ``size`` bytes from the current position, or everything
        that is left if ``size`` is negative or None.  Returns ``b""`` once all
        of the content has been consumed.
        """
        content = self.content
        if size is None or size < 0:
            end = len(content)
        else:
            end = min(self._position + size, len(content))

        data = content[self._position : end]
        self._position = max(self._position, end)
        return data

    def readinto(self, buffer: bytearray | memoryview) -> int:
        """Read bytes into a pre-allocated buffer, returning how many were
        read.  0 means end-of-data.
        """
        data = self.read(len(buffer))
        n = len(data)
        buffer[:n] = data
        return n

    def tell(self) -> int:
        """The current read position."""
        return self._position

    def __repr__(self) -> str:
        return "{}(filename={!r}, field_name={!r}, content_type={!r}, size={!r})".format(
            self.__class__.__name__, self.filename, self.field_name, self.content_type, self.size
        )


class FormData:
    """The text fields and files decoded from one multipart/form-data body.

    Both mappings are read-only, and a name appears in at most one of them.

    :param fields: mapping of field name to text value
    :param files: mapping of field name to :class:`File`
    """

    __slots__ = ("_fields", "_files")

    def __init__(self, fields: Mapping[str, str] | None = None, files: Mapping[str, File] | None = None) -> None:
        self._fields = MappingProxyType(dict(fields or {}))
        self._files = MappingProxyType(dict(files or {}))

    @property
    def fields(self) -> Mapping[str, str]:
        return self._fields

    @property
    def files(self) -> Mapping[str, File]:
        return self._files

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return the value of the text field ``name``, or ``default`` if the
        form has no such field.
        """
        return self._fields.get(name, default)

    def file(self, name: str) -> File | None:
        """Return the file uploaded as ``name``, or None."""
        return self._files.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._fields or name in self._files

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(fields={dict(self._fields)!r}, files={dict(self._files)!r})"


class BaseParser:
    """This class is the base class for all parsers.  It contains the logic for
    calling and adding callbacks.

    A callback can be one of two different forms.  "Notification callbacks" are
    callbacks that are called when something happens - for example, when a new
    part of a multipart message is encountered by the parser.  "Data callbacks"
    are called when we get some sort of data - for example, part of the body of
    a multipart chunk.  Notification callbacks are called with no parameters,
    whereas data callbacks are called with three, as follows::

        data_callback(data, start, end)

    The "data" parameter is a bytestring.  "start" and "end" are integer
    indexes into it that represent the data of interest.  Thus, in a data callback, the slice
    `data[start:end]` represents the data that the callback is "interested in".
    The callback is not passed a copy of the data, since copying severely hurts
    performance.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(__name__)
        self.callbacks: MultipartCallbacks = {}

    def callback(
        self, name: CallbackName, data: bytes | None = None, start: int | None = None, end: int | None = None
    ) -> None:
        """This function calls a provided callback with some data.  If the
        callback is not set, will do nothing.

        :param name: The name of the callback to call (as a string).
        :param data: Data to pass to the callback.  If None, then it is
                     assumed that the callback is a notification callback,
                     and no parameters are given.
        :param end: An integer that is passed to the data callback.
        :param start: An integer that is passed to the data callback.
        """
        on_name = "on_" + name
        func = self.callbacks.get(on_name)
        if func is None:
            return
        func = cast("Callable[..., Any]", func)
        # Depending on whether we're given a buffer...
        if data is not None:
            # Don't do anything if we have start == end.
            if start is not None and start == end:
                return

            self.logger.debug("Calling %s with data[%d:%d]", on_name, start, end)
            func(data, start, end)
        else:
            self.logger.debug("Calling %s with no data", on_name)
            func()

    def set_callback(self, name: CallbackName, new_func: Callable[..., Any] | None) -> None:
        """Update the function for a callback.  Removes from the callbacks dict
        if new_func is None.

        :param name: The name of the callback to call (as a string).
        :param new_func: The new function for the callback.  If None, then the
                         callback will be removed (with no error if it does not
                         exist).
        """
        if new_func is None:
            self.callbacks.pop("on_" + name, None)  # type: ignore[misc]
        else:
            self.callbacks["on_" + name] = new_func  # type: ignore[literal-required]

    def close(self) -> None:
        pass  # pragma: no cover

    def finalize(self) -> None:
        pass  # pragma: no cover

    def __repr__(self) -> str:
        return "%s()" % self.__class__.__name__


class MultipartParser(BaseParser):
    """This class is a streaming multipart/form-data parser.

    .. list-table::
       :widths: 15 10 25
       :header-rows: 1

       * - Callback Name
         - Parameters
         - Description
       * - on_part_begin
         - None
         - Called when a new part of the multipart message is encountered.
       * - on_part_data
         - data, start, end
         - Called when a portion of a part's data is encountered.
       * - on_part_end
         - None
         - Called when the end of a part is reached.
       * - on_header_begin
         - None
         - Called when we've found a new header in a part of a multipart
           message
       * - on_header_field
         - data, start, end
         - Called each time an additional portion of a header is read (i.e. the
           part of the header that is before the colon; the "Foo" in
           "Foo: Bar").
       * - on_header_value
         - data, start, end
         - Called when we get data for a header.
       * - on_header_continue
         - None
         - Called when a line starting with whitespace continues the value of
           the previous header (obsolete line folding).  The value data that
           follows belongs to that header.
       * - on_header_end
         - None
         - Called when the current header is finished - i.e. we've reached the
           newline at the end of the header.
       * - on_headers_finished
         - None
         - Called when all headers are finished, and before the part data
           starts.
       * - on_end
         - None
         - Called when the parser is finished parsing all data.

    Lines are expected to end in CRLF.  If the first boundary line ends in a
    bare LF instead, the parser switches to LF mode for the rest of the body.
    Lines before the first delimiter line are a preamble and are skipped, and
    spaces or tabs between a delimiter and its line break are ignored.

    :param boundary: The multipart boundary.  This is required, and must match
                     what is given in the HTTP request - usually in the
                     Content-Type header.
    :param callbacks: A dictionary of callbacks.  See the documentation for
                      :class:`BaseParser`.
    """

    def __init__(self, boundary: bytes | str, callbacks: MultipartCallbacks = {}) -> None:
        # Initialize parser state.
        super().__init__()
        self.state = MultipartState.START
        self.index = self.flags = 0
        self.bare_lf = False

        self.callbacks = callbacks

        # Number of bytes written so far, reported as the offset of errors
        # found by finalize().
        self._current_size = 0

        # Setup marks.  These are used to track the state of data received.
        self.marks: dict[str, int] = {}

        # Bytes seen after a full boundary match in part data (padding, then
        # the start of the line break or "--"), held back until we know
        # whether they end the part.
        self.tail = b""

        # Save our boundary.
        if isinstance(boundary, str):  # pragma: no cover
            boundary = boundary.encode("latin-1")
        if not boundary:
            raise ValueError("boundary must not be empty")
        self._delimiter = b"--" + boundary
        self.boundary = b"\r\n" + self._delimiter

    def write(self, data: bytes) -> int:
        """Write some data to the parser, which will perform size verification,
        and then parse the data into the appropriate location (e.g. header,
        data, etc.), and pass this on to the underlying callback.  If an error
        is encountered, a MalformedMultipartBody will be raised.  The "offset"
        attribute on the raised exception will be set to the offset of the
        byte in the input chunk that caused the error.

        :param data: a bytestring
        """
        length = 0
        try:
            length = self._internal_write(data, len(data))
        finally:
            self._current_size += length

        return length

    def _error(self, msg: str, offset: int) -> MalformedMultipartBody:
        self.logger.warning(msg)
        e = MalformedMultipartBody(msg)
        e.offset = offset
        return e

    def _internal_write(self, data: bytes, length: int) -> int:
        # Get values from locals.
        boundary = self.boundary

        # Get our state, flags and index.  These are persisted between calls to
        # this function.
        state = self.state
        index = self.index
        flags = self.flags
        tail = self.tail

        # Whatever the previous call held back as a possible delimiter.
        lookback = boundary + tail

        # Our index defaults to 0.
        i = 0

        # Set a mark.
        def set_mark(name: str) -> None:
            self.marks[name] = i

        # Remove a mark.
        def delete_mark(name: str, reset: bool = False) -> None:
            self.marks.pop(name, None)

        # Helper function that makes calling a callback with data easier. The
        # 'remaining' parameter will callback from the marked value until the
        # end of the buffer, and reset the mark, instead of deleting it.  This
        # is used at the end of the function to call our callbacks with any
        # remaining data in this chunk.
        def data_callback(name: CallbackName, end_i: int, remaining: bool = False) -> None:
            marked_index = self.marks.get(name)
            if marked_index is None:
                return

            # Otherwise, we call it from the mark to the current byte we're
            # processing.
            if end_i <= marked_index:
                # There is no additional data to send.
                pass
            elif marked_index >= 0:
                # We are emitting data from the local buffer.
                self.callback(name, data, marked_index, end_i)
            else:
                # Some of the data comes from a partial boundary match.
                # and requires look-behind.
                lookbehind_len = -marked_index
                if lookbehind_len <= len(lookback):
                    self.callback(name, lookback, 0, lookbehind_len)
                else:  # pragma: no cover (error case)
                    self.logger.warning("Look-back buffer error")

                if end_i > 0:
                    self.callback(name, data, 0, end_i)
            # If we're getting remaining data, we have got all the data we
            # can be certain is not a boundary, leaving only a partial boundary match.
            if remaining:
                self.marks[name] = end_i - length
            else:
                self.marks.pop(name, None)

        # For each byte...
        while i < length:
            c = data[i]

            if state == MultipartState.START:
                # Skip leading newlines
                if c == CR or c == LF:
                    i += 1
                    continue

                # index is used as in index into our boundary.  Set to 0.
                index = 0

                # Move to the next state, but decrement i so that we re-process
                # this character.
                state = MultipartState.START_BOUNDARY
                i -= 1

            elif state == MultipartState.START_BOUNDARY:
                # index counts the matched characters of the delimiter
                # "--boundary" at the start of a line.  A line that turns out
                # not to be a delimiter line is preamble.
                if index == len(boundary) - 2:
                    if c == SPACE or c == HTAB:
                        # Transport padding.
                        i += 1
                        continue
                    elif c == HYPHEN:
                        # Potential empty message.
                        state = MultipartState.END_BOUNDARY
                    elif c == LF:
                        # The delimiter line ends in a bare LF, so the whole
                        # body is read in LF mode from here on.
                        self.bare_lf = True
                        boundary = self.boundary = b"\n" + self._delimiter
                        index = 0
                        flags &= ~FLAG_HEADER_SEEN
                        self.callback("part_begin")
                        state = MultipartState.HEADER_FIELD_START
                        i += 1
                        continue
                    elif c != CR:
                        state = MultipartState.PREAMBLE
                        i -= 1

                    index += 1

                elif index == len(boundary) - 2 + 1:
                    if c != LF:
                        state = MultipartState.PREAMBLE
                        i -= 1
                    else:
                        # The index is now used for indexing into our boundary.
                        index = 0

                        # Callback for the start of a part.
                        flags &= ~FLAG_HEADER_SEEN
                        self.callback("part_begin")

                        # Move to the next character and state.
                        state = MultipartState.HEADER_FIELD_START

                elif c != boundary[index + 2]:
                    state = MultipartState.PREAMBLE
                    i -= 1

                else:
                    # Increment index into boundary and continue.
                    index += 1

            elif state == MultipartState.PREAMBLE:
                # Skip to the end of the line, then look for a delimiter on
                # the next one.
                if c == LF:
                    index = 0
                    state = MultipartState.START_BOUNDARY

            elif state == MultipartState.HEADER_FIELD_START:
                # Mark the start of a header field here, reset the index, and
                # continue parsing our header field.
                index = 0

                if (c == SPACE or c == HTAB) and flags & FLAG_HEADER_SEEN:
                    # A folded line: more value for the previous header.
                    self.callback("header_continue")
                    state = MultipartState.HEADER_VALUE_START
                    i += 1
                    continue

                # Set a mark of our header field.
                set_mark("header_field")

                # Notify that we're starting a header if the next character is
                # not a line break.
                if c != CR and not (c == LF and self.bare_lf):
                    self.callback("header_begin")

                # Move to parsing header fields.
                state = MultipartState.HEADER_FIELD
                i -= 1

            elif state == MultipartState.HEADER_FIELD:
                # If we've reached a line break at the beginning of a header,
                # it means that there are no more headers.
                if c == CR and index == 0:
                    delete_mark("header_field")
                    state = MultipartState.HEADERS_ALMOST_DONE
                    i += 1
                    continue

                if c == LF and index == 0 and self.bare_lf:
                    delete_mark("header_field")
                    self.callback("headers_finished")
                    state = MultipartState.PART_DATA_START
                    i += 1
                    continue

                # Increment our index in the header.
                index += 1

                # If we've reached a colon, we're done with this header.
                if c == COLON:
                    # A 0-length header is an error.
                    if index == 1:
                        raise self._error("Found 0-length header at %d" % (i,), i)

                    # Call our callback with the header field.
                    data_callback("header_field", i)

                    # Move to parsing the header value.
                    state = MultipartState.HEADER_VALUE_START

                elif c not in TOKEN_CHARS_SET:
                    raise self._error("Found invalid character %r in header at %d" % (c, i), i)

            elif state == MultipartState.HEADER_VALUE_START:
                # Skip leading whitespace.
                if c == SPACE or c == HTAB:
                    i += 1
                    continue

                # Mark the start of the header value.
                set_mark("header_value")

                # Move to the header-value state, reprocessing this character.
                state = MultipartState.HEADER_VALUE
                i -= 1

            elif state == MultipartState.HEADER_VALUE:
                # If we've got a CR, we're nearly done our headers.  Otherwise,
                # we do nothing and just move past this character.
                if c == CR:
                    data_callback("header_value", i)
                    self.callback("header_end")
                    flags |= FLAG_HEADER_SEEN
                    state = MultipartState.HEADER_VALUE_ALMOST_DONE

                elif c == LF and self.bare_lf:
                    data_callback("header_value", i)
                    self.callback("header_end")
                    flags |= FLAG_HEADER_SEEN
                    state = MultipartState.HEADER_FIELD_START

            elif state == MultipartState.HEADER_VALUE_ALMOST_DONE:
                # The last character should be a LF.  If not, it's an error.
                if c != LF:
                    raise self._error(f"Did not find LF character at end of header (found {c!r})", i)

                # Move back to the start of another header.  Note that if that
                # state detects ANOTHER newline, it'll trigger the end of our
                # headers.
                state = MultipartState.HEADER_FIELD_START

            elif state == MultipartState.HEADERS_ALMOST_DONE:
                # We're almost done our headers.  This is reached when we parse
                # a CR at the beginning of a header, so our next character
                # should be a LF, or it's an error.
                if c != LF:
                    raise self._error(f"Did not find LF at end of headers (found {c!r})", i)

                self.callback("headers_finished")
                state = MultipartState.PART_DATA_START

            elif state == MultipartState.PART_DATA_START:
                # Mark the start of our part data.
                set_mark("part_data")

                # Start processing part data, including this character.
                state = MultipartState.PART_DATA
                i -= 1

            elif state == MultipartState.PART_DATA:
                # We're processing our part data right now.  During this, we
                # need to efficiently search for our boundary, since any data
                # on any number of lines can be a part of the current data.

                # Save the current value of our index.  We use this in case we
                # find part of a boundary, but it doesn't match fully.
                prev_index = index

                # Set up variables.
                boundary_length = len(boundary)
                data_length = length

                # If our index is 0, we're starting a new part, so start our
                # search.
                if index == 0:
                    # The most common case is likely to be that the whole
                    # boundary is present in the buffer.
                    # Calling `find` is much faster than iterating here.
                    i0 = data.find(boundary, i, data_length)
                    if i0 >= 0:
                        # We matched the whole boundary string.
                        index = boundary_length - 1
                        i = i0 + boundary_length - 1
                    else:
                        # No match found for whole string.
                        # There may be a partial boundary at the end of the
                        # data, which the find will not match.
                        # Since the length should to be searched is limited to
                        # the boundary length, just perform a naive search.
                        i = max(i, data_length - boundary_length)

                        # Search forward until we either hit the end of our buffer,
                        # or reach a potential start of the boundary.
                        while i < data_length - 1 and data[i] != boundary[0]:
                            i += 1

                    c = data[i]

                # Now, we have a couple of cases here.  If our index is before
                # the end of the boundary...
                if index < boundary_length:
                    # If the character matches...
                    if boundary[index] == c:
                        # The current character matches, so continue!
                        index += 1
                    else:
                        index = 0

                # Otherwise the whole boundary string has matched, and index
                # keeps counting what follows it: transport padding, then
                # the line break, or "--" for the close delimiter.
                elif (c == SPACE or c == HTAB) and not flags & (FLAG_PART_BOUNDARY | FLAG_LAST_BOUNDARY):
                    tail += data[i : i + 1]
                    index += 1

                elif c == CR and not flags & (FLAG_PART_BOUNDARY | FLAG_LAST_BOUNDARY):
                    flags |= FLAG_PART_BOUNDARY
                    tail += b"\r"
                    index += 1

                elif c == HYPHEN and index == boundary_length:
                    # We might be at the last of all boundaries.
                    flags |= FLAG_LAST_BOUNDARY
                    tail += b"-"
                    index += 1

                elif c == LF and (flags & FLAG_PART_BOUNDARY or (self.bare_lf and not flags & FLAG_LAST_BOUNDARY)):
                    # We have identified a boundary, callback for any data before it.
                    data_callback("part_data", i - index)
                    # Callback indicating that we've reached the end of
                    # a part, and are starting a new one.
                    self.callback("part_end")
                    self.callback("part_begin")

                    # Move to parsing new headers.
                    index = 0
                    tail = b""
                    flags &= ~(FLAG_PART_BOUNDARY | FLAG_HEADER_SEEN)
                    state = MultipartState.HEADER_FIELD_START
                    i += 1
                    continue

                elif c == HYPHEN and flags & FLAG_LAST_BOUNDARY:
                    # We have identified a boundary, callback for any data before it.
                    data_callback("part_data", i - index)
                    # Callback to end the current part, and then the
                    # message.
                    self.callback("part_end")
                    self.callback("end")
                    tail = b""
                    flags &= ~FLAG_LAST_BOUNDARY
                    state = MultipartState.END

                else:
                    # Not a delimiter after all, so the boundary and whatever
                    # followed it are data.
                    index = 0
                    tail = b""
                    flags &= ~(FLAG_PART_BOUNDARY | FLAG_LAST_BOUNDARY)

                # Otherwise, our index is 0.  If the previous index is not, it
                # means we reset something, and we need to take the data we
                # thought was part of our boundary and send it along as actual
                # data.
                if index == 0 and prev_index > 0:
                    # Overwrite our previous index.
                    prev_index = 0

                    # Re-consider the current character, since this could be
                    # the start of the boundary itself.
                    i -= 1

            elif state == MultipartState.END_BOUNDARY:
                # A first delimiter of "--boundary--" closes an empty message;
                # anything else after the first hyphen makes it a preamble line.
                if c != HYPHEN:
                    state = MultipartState.PREAMBLE
                    i -= 1
                else:
                    self.callback("end")
                    state = MultipartState.END

            elif state == MultipartState.END:
                # Padding and line breaks after the close delimiter are fine;
                # anything else is an epilogue, and is not ours to parse.
                if c == CR or c == LF or c == SPACE or c == HTAB:
                    i += 1
                    continue
                # Skip data after the last boundary.
                self.logger.warning("Skipping data after last boundary")
                i = length
                break

            else:  # pragma: no cover (error case)
                # We got into a strange state somehow!  Just stop processing.
                raise self._error("Reached an unknown state %d at %d" % (state, i), i)

            # Move to the next byte.
            i += 1

        # We call our callbacks with any remaining data.  Note that we pass
        # the 'remaining' flag, which sets the mark back to 0 instead of
        # deleting it, if it's found.  This is because, if we're at the end of
        # the buffer, the data may continue in the next chunk.
        data_callback("header_field", length, True)
        data_callback("header_value", length, True)
        data_callback("part_data", length - index, True)

        # Save values to locals.
        self.state = state
        self.index = index
        self.flags = flags
        self.tail = tail

        # Return our data length to indicate no errors, and that we processed
        # all of it.
        return length

    def finalize(self) -> None:
        """Finalize this parser, which signals to that we are finished parsing.

        Raises MalformedMultipartBody if the close delimiter was never seen.
        """
        if self.state != MultipartState.END:
            msg = "Body ended before the closing boundary (state %s)" % self.state.name
            raise self._error(msg, self._current_size)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(boundary={self.boundary!r})"


class FormParser:
    """This class is the all-in-one form parser.  Given the boundary of a
    multipart/form-data body, it will create a MultipartParser and wire its
    callbacks so that every part ends up as a :class:`Field` or a
    :class:`File`.

    A part is a file if, and only if, its Content-Disposition header has a
    ``filename`` parameter.  Every part must have a ``name`` parameter.

    :param boundary: The multipart boundary.
    :param on_field: Callback to call with each parsed field.
    :param on_file: Callback to call with each parsed file.
    :param on_end: An optional callback to call when all parts are parsed.
    :param config: Configuration to use for this FormParser.  The default
                   values are taken from the DEFAULT_CONFIG value, and then
                   any keys present in this dictionary will overwrite the
                   default values.
    """

    #: This is the default configuration for our form parser.
    #: Note: all file sizes should be in bytes.
    DEFAULT_CONFIG: FormParserConfig = {
        "MAX_BODY_SIZE": float("inf"),
        "ENCODING": "utf-8",
        "DEFAULT_CONTENT_TYPE": "application/octet-stream",
        "ERROR_ON_BAD_CTE": False,
    }

    def __init__(
        self,
        boundary: bytes | str,
        on_field: OnFieldCallback | None,
        on_file: OnFileCallback | None,
        on_end: Callable[[], None] | None = None,
        config: Mapping[str, Any] = {},
    ) -> None:
        self.logger = logging.getLogger(__name__)
        self.boundary = boundary
        self.bytes_received = 0

        # Save callbacks.
        self.on_field = on_field
        self.on_file = on_file
        self.on_end = on_end

        # Set configuration options.
        self.config: FormParserConfig = self.DEFAULT_CONFIG.copy()
        self.config.update(config)  # type: ignore[typeddict-item]

        encoding = self.config["ENCODING"]

        # Header name and value buffers, and the finished headers of the
        # current part.
        header_name: list[bytes] = []
        header_value: list[bytes] = []
        headers: dict[bytes, bytes] = {}
        last_header: bytes | None = None

        f_multi: File | Field | None = None
        writer: File | Field | Base64Decoder | QuotedPrintableDecoder | None = None

        def on_part_begin() -> None:
            nonlocal headers, last_header
            headers = {}
            last_header = None

        def on_part_data(data: bytes, start: int, end: int) -> None:
            assert writer is not None
            writer.write(data[start:end])

        def on_part_end() -> None:
            nonlocal f_multi, writer
            assert f_multi is not None and writer is not None
            # Finalizing the writer flushes any decoder, then the file or
            # field behind it.
            writer.finalize()
            if isinstance(f_multi, File):
                if self.on_file is not None:
                    self.on_file(f_multi)
            else:
                if self.on_field is not None:
                    self.on_field(f_multi)
            f_multi = writer = None

        def on_header_field(data: bytes, start: int, end: int) -> None:
            header_name.append(data[start:end])

        def on_header_value(data: bytes, start: int, end: int) -> None:
            header_value.append(data[start:end])

        def on_header_continue() -> None:
            # Reopen the previous header; the folded line is appended to its
            # value after a single space.
            assert last_header is not None
            header_name.append(last_header)
            header_value.extend((headers.pop(last_header, b""), b" "))

        def on_header_end() -> None:
            nonlocal last_header
            # Header names are case-insensitive.
            last_header = b"".join(header_name).lower()
            headers[last_header] = b"".join(header_value)
            del header_name[:]
            del header_value[:]

        def on_headers_finished() -> None:
            nonlocal f_multi, writer

            # Parse the content-disposition header.
            content_disp = headers.get(b"content-disposition")
            disp, options = parse_options_header(content_disp)

            # Get the field and filename.
            field_name = options.get(b"name")
            file_name = options.get(b"filename")

            if field_name is None:
                self.logger.warning("Part has no name in its Content-Disposition header: %r", content_disp)
                raise MalformedMultipartBody("Part has no name in its Content-Disposition header: %r" % content_disp)

            name = field_name.decode(encoding, "replace")

            # Create the proper class.
            if file_name is None:
                f_multi = Field(name)
            else:
                content_type = headers.get(b"content-type", b"").decode("latin-1").strip()
                f_multi = File(
                    file_name.decode(encoding, "replace"),
                    name,
                    content_type=content_type or self.config["DEFAULT_CONTENT_TYPE"],
                )

            # Parse the given Content-Transfer-Encoding to determine what
            # we need to do with the incoming data.
            transfer_encoding = headers.get(b"content-transfer-encoding", b"7bit").strip().lower()

            if transfer_encoding in (b"binary", b"8bit", b"7bit"):
                writer = f_multi

            elif transfer_encoding == b"base64":
                writer = Base64Decoder(f_multi)

            elif transfer_encoding == b"quoted-printable":
                writer = QuotedPrintableDecoder(f_multi)

            else:
                self.logger.warning("Unknown Content-Transfer-Encoding: %r", transfer_encoding)
                if self.config["ERROR_ON_BAD_CTE"]:
                    raise MalformedMultipartBody(f"Unknown Content-Transfer-Encoding {transfer_encoding!r}")
                else:
                    # If we aren't erroring, then we just treat this as an
                    # unencoded Content-Transfer-Encoding.
                    writer = f_multi

        def _on_end() -> None:
            if self.on_end is not None:
                self.on_end()

        # Instantiate a multipart parser.
        self.parser = MultipartParser(
            boundary,
            callbacks={
                "on_part_begin": on_part_begin,
                "on_part_data": on_part_data,
                "on_part_end": on_part_end,
                "on_header_field": on_header_field,
                "on_header_value": on_header_value,
                "on_header_continue": on_header_continue,
                "on_header_end": on_header_end,
                "on_headers_finished": on_headers_finished,
                "on_end": _on_end,
            },
        )

    def write(self, data: bytes) -> int:
        """Write some data.  The parser will forward this to the appropriate
        underlying parser.

        :param data: a bytestring
        """
        if self.bytes_received + len(data) > self.config["MAX_BODY_SIZE"]:
            msg = "Body is larger than the maximum of %d bytes" % self.config["MAX_BODY_SIZE"]
            self.logger.warning(msg)
            raise RequestBodyTooLarge(msg)

        self.bytes_received += len(data)
        return self.parser.write(data)

    def finalize(self) -> None:
        """Finalize the parser."""
        self.parser.finalize()

    def close(self) -> None:
        """Close the parser."""
        self.parser.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(boundary={self.boundary!r}, parser={self.parser!r})"


def parse_form_data(body: bytes, boundary: bytes | str, config: Mapping[str, Any] | None = None) -> FormData:
    """Split a complete multipart/form-data body along ``boundary`` and
    return the decoded :class:`FormData`.

    Field values are decoded with the ``ENCODING`` config value.  When a name
    is used by more than one part, the last part wins.  Any error aborts the
    whole parse: there is no partial result.

    :param body: the normalized request body
    :param boundary: the boundary from the Content-Type header
    :param config: overrides for :attr:`FormParser.DEFAULT_CONFIG`
    """
    fields: dict[str, str] = {}
    files: dict[str, File] = {}

    parser: FormParser

    def on_field(field: Field) -> None:
        files.pop(field.field_name, None)
        fields[field.field_name] = field.value.decode(parser.config["ENCODING"], "replace")

    def on_file(file: File) -> None:
        assert file.field_name is not None
        fields.pop(file.field_name, None)
        files[file.field_name] = file

    parser = FormParser(boundary, on_field, on_file, config=config or {})
    parser.write(body)
    parser.finalize()

    return FormData(fields, files)


# Unique missing object.
_missing = object()

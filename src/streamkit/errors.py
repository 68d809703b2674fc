# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Base exception hierarchy for :mod:`streamkit`."""

from __future__ import annotations


class StreamKitError(Exception):
    """Base class for all streamkit exceptions.

    Catching ``StreamKitError`` handles every failure raised by the library
    while letting standard Python exceptions propagate normally.

    Example:
        Report any library failure::

            try:
                data = read_all(stream)
            except StreamKitError as e:
                logger.error("Stream failure: %s", e)

    Note:
        :class:`EndOfStream` and :class:`FinalToken` are deliberately *not*
        subclasses: they are termination signals, not failures.
    """


class ConfigurationError(StreamKitError, ValueError):
    """Raised when an open mode, flag combination or setting is invalid.

    Always detected before any I/O is attempted. Common causes:

    - No access mode, or more than one access mode
    - ``CREATE_EXCLUSIVE`` without ``CREATE``
    - Non-positive buffer sizes or an initial buffer larger than the maximum
    """


class ResourceError(StreamKitError):
    """Raised when an operation fails at the OS boundary.

    Attributes:
        op: Operation that failed (``open``, ``read``, ``write``, ...).
        path: Name of the resource involved, when known.
        cause: Underlying exception, usually an :class:`OSError`.

    Example::

        try:
            stream = open_file("data.bin", AccessMode.READ_ONLY)
        except ResourceError as e:
            if isinstance(e.cause, FileNotFoundError):
                ...
    """

    def __init__(
        self,
        op: str,
        path: str | None = None,
        cause: BaseException | None = None,
        *,
        message: str | None = None,
    ) -> None:
        self.op = op
        self.path = path
        self.cause = cause
        if message is None:
            detail = _describe(cause)
            message = f"{op} {path}: {detail}" if path else f"{op}: {detail}"
        super().__init__(message)

    @property
    def errno(self) -> int | None:
        """``errno`` of the underlying :class:`OSError`, if any."""
        if isinstance(self.cause, OSError):
            return self.cause.errno
        return None


class IncompleteReadError(ResourceError):
    """Raised by :func:`read_all` when the source fails before end-of-stream.

    ``partial`` holds every byte accumulated before the failure; callers
    must expect both the data and the error to be meaningful.
    """

    def __init__(
        self,
        path: str | None,
        cause: BaseException,
        partial: bytes,
    ) -> None:
        self.partial = partial
        super().__init__(
            "read_all",
            path,
            cause,
            message=(
                f"read_all failed after {len(partial)} bytes: {_describe(cause)}"
            ),
        )


class ShortWriteError(ResourceError):
    """Raised when a writer accepts fewer bytes than offered and makes no progress."""

    def __init__(self, path: str | None, written: int, expected: int) -> None:
        self.written = written
        self.expected = expected
        super().__init__(
            "write",
            path,
            message=f"short write: {written} of {expected} bytes",
        )


class EndOfStream(EOFError):  # noqa: N818
    """Signals that a reader will never produce more bytes.

    This is a normal termination signal, distinguishable from every error
    kind. ``count`` is the number of bytes the raising call placed into the
    caller's buffer before reporting the end (``0`` for a bare end-of-stream).
    """

    def __init__(self, count: int = 0) -> None:
        super().__init__("end of stream")
        self.count = count


class ProtocolViolation(StreamKitError, RuntimeError):  # noqa: N818
    """Raised when a reader or split function breaks its contract.

    This indicates a programming error in the supplied component, for
    example a split function reporting a negative advance or returning a
    token without consuming input before end-of-stream.
    """


class TokenTooLarge(StreamKitError, ValueError):  # noqa: N818
    """Raised when a single token does not fit in the maximum buffer size."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"token too long: exceeds {limit} bytes")


class SplitError(StreamKitError, ValueError):
    """Base class for errors reported by split functions."""


class MalformedEncodingError(SplitError):
    """Raised by rune splitting when the input is not valid UTF-8."""

    def __init__(self, data: bytes, reason: str) -> None:
        self.data = data
        self.reason = reason
        super().__init__(f"malformed UTF-8 sequence {data!r}: {reason}")


class TruncatedTokenError(StreamKitError, ValueError):
    """Raised when end-of-stream leaves an incomplete token behind.

    Only recorded by scanners configured with ``TrailingPolicy.ERROR``.
    """

    def __init__(self, remaining: bytes) -> None:
        self.remaining = remaining
        super().__init__(
            f"stream ended inside a token ({len(remaining)} bytes left over)"
        )


class ScannerStateError(StreamKitError, RuntimeError):
    """Raised when a scanner method is called in a state that forbids it."""


class FinalToken(Exception):  # noqa: N818
    """Raised by a split function to deliver a last token and stop scanning.

    ``token`` is emitted when not ``None``; either way the scanner ends
    without recording an error.
    """

    def __init__(self, token: bytes | None = None) -> None:
        super().__init__("final token")
        self.token = token


def _describe(cause: BaseException | None) -> str:
    if cause is None:
        return "failed"
    if isinstance(cause, OSError) and cause.strerror:
        return cause.strerror
    return str(cause) or type(cause).__name__


__all__ = [
    "ConfigurationError",
    "EndOfStream",
    "FinalToken",
    "IncompleteReadError",
    "MalformedEncodingError",
    "ProtocolViolation",
    "ResourceError",
    "ScannerStateError",
    "ShortWriteError",
    "SplitError",
    "StreamKitError",
    "TokenTooLarge",
    "TruncatedTokenError",
]

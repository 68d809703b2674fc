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

"""Buffered, pull-based tokenizer over any :class:`Reader`.

The scanner owns one arena (a ``bytearray``) addressed by two offsets:
``start`` is the first unconsumed byte and ``end`` the first byte not yet
filled. Bytes in ``[start, end)`` are pending input; ``[end, capacity)`` is
free space for the next fill. Before each fill pending bytes are shifted to
offset zero; when the arena is full it is reallocated at twice the size, up
to one byte past ``max_token_size``. The spare byte holds the delimiter of
a maximum-size token, or lets the fill that reports end-of-stream happen.
A token longer than ``max_token_size`` ends the scan with
:class:`TokenTooLarge`.

End-of-stream handling: once the source is exhausted the split function is
called with ``at_eof=True`` until it stops producing tokens. If it still asks
for more data, leftover bytes are discarded by default
(``TrailingPolicy.DISCARD``) or reported as :class:`TruncatedTokenError`
(``TrailingPolicy.ERROR``).
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum, auto
from typing import Final

from ..config import ScannerConfig, TrailingPolicy
from ..dbc import ContractResult, invariant
from ..errors import (
    EndOfStream,
    FinalToken,
    ProtocolViolation,
    ResourceError,
    ScannerStateError,
    SplitError,
    StreamKitError,
    TokenTooLarge,
    TruncatedTokenError,
)
from ..logging import StructuredLogger, get_logger
from ..streams import MAX_CONSECUTIVE_EMPTY_READS, Reader
from ._split import SplitFunc, scan_lines

__all__ = [
    "MAX_CONSECUTIVE_EMPTY_READS",
    "MAX_CONSECUTIVE_EMPTY_TOKENS",
    "Scanner",
    "ScannerState",
]

#: Tokens produced at end-of-stream without consuming input before the split
#: function is declared broken.
MAX_CONSECUTIVE_EMPTY_TOKENS: Final[int] = 100

logger: StructuredLogger = get_logger(__name__, context={"component": "scanner"})


class ScannerState(Enum):
    READY = auto()
    TOKEN_AVAILABLE = auto()
    DONE = auto()


def _buffer_bounds(scanner: Scanner) -> ContractResult:
    start, end, capacity = scanner._start, scanner._end, len(scanner._buffer)
    return (
        0 <= start <= end <= capacity,
        f"start={start} end={end} capacity={capacity}",
    )


def _done_is_final(scanner: Scanner) -> ContractResult:
    return scanner._state is not ScannerState.DONE or scanner._finished


@invariant(_buffer_bounds, _done_is_final)
class Scanner:
    """Split a byte stream into tokens with bounded memory.

    Example::

        with open_read("access.log") as stream:
            scanner = Scanner(stream)
            while scanner.scan():
                handle(scanner.token)
            scanner.raise_for_error()

        # Or iterate; a recorded error is raised after the last token.
        for word in Scanner(stream, scan_words):
            ...

    ``scan()`` never raises for stream or split failures: they end the scan
    and are exposed through :attr:`error`. Any other exception escaping a
    reader or split function propagates once and is recorded as a
    :class:`ProtocolViolation` chained to it. The done state is sticky; once
    ``scan()`` has returned ``False`` it keeps returning ``False`` without
    touching the reader again. A token is only guaranteed valid until the
    next ``scan()``.

    A scanner is single-owner: concurrent calls need external locking.
    """

    def __init__(
        self,
        reader: Reader,
        split: SplitFunc = scan_lines,
        *,
        config: ScannerConfig | None = None,
    ) -> None:
        resolved = config if config is not None else ScannerConfig()
        self._reader = reader
        self._split = split
        self._initial_size = resolved.initial_buffer_size
        self._max_token_size = resolved.max_token_size
        self._trailing = resolved.trailing
        self._buffer = bytearray()
        self._start = 0
        self._end = 0
        self._eof = False
        self._state = ScannerState.READY
        self._finished = False
        self._token: bytes | None = None
        self._error: StreamKitError | None = None
        self._empty_tokens = 0
        self._scan_called = False

    @property
    def state(self) -> ScannerState:
        return self._state

    @property
    def error(self) -> StreamKitError | None:
        """Error that ended the scan, or ``None`` after a clean end-of-stream."""
        return self._error

    @property
    def token(self) -> bytes:
        """Most recent token produced by :meth:`scan`.

        Raises:
            ScannerStateError: No token is available.
        """
        if self._token is None:
            raise ScannerStateError("no token available; scan() did not produce one")
        return self._token

    @property
    def text(self) -> str:
        """Most recent token decoded as UTF-8."""
        return self.token.decode("utf-8")

    @property
    def buffered(self) -> int:
        """Bytes read from the source but not yet consumed."""
        return self._end - self._start

    def set_split(self, split: SplitFunc) -> None:
        """Replace the split function. Only allowed before the first scan."""
        if self._scan_called:
            raise ScannerStateError("set_split called after scanning started")
        self._split = split

    def set_buffer(self, initial_size: int, max_token_size: int) -> None:
        """Resize the arena limits. Only allowed before the first scan."""
        if self._scan_called:
            raise ScannerStateError("set_buffer called after scanning started")
        sizing = ScannerConfig(
            initial_buffer_size=initial_size,
            max_token_size=max_token_size,
            trailing=self._trailing,
        )
        self._initial_size = sizing.initial_buffer_size
        self._max_token_size = sizing.max_token_size

    def scan(self) -> bool:
        """Advance to the next token.

        Returns:
            ``True`` when :attr:`token` holds a new token, ``False`` once the
            input is exhausted or an error has been recorded.
        """

        if self._finished:
            self._state = ScannerState.DONE
            self._token = None
            return False
        self._scan_called = True
        self._token = None
        try:
            return self._advance()
        except Exception as error:
            self._finish(_unexpected_failure(error), reason="exception")
            raise

    def raise_for_error(self) -> None:
        """Raise the recorded error, if any."""
        if self._error is not None:
            raise self._error

    def __iter__(self) -> Iterator[bytes]:
        while self.scan():
            yield self.token
        self.raise_for_error()

    def _advance(self) -> bool:
        while True:
            outcome = self._split_pending()
            if outcome is not None:
                return outcome
            if not self._fill():
                return False

    def _split_pending(self) -> bool | None:
        """Run the split function until it yields a token or needs more data.

        Returns the value ``scan()`` should return, or ``None`` when the
        arena must be refilled first.
        """

        while True:
            pending = self._end - self._start
            if not pending and not self._eof:
                return None

            data = memoryview(self._buffer)[self._start : self._end]
            try:
                advance, token = self._split(data, self._eof)
            except FinalToken as final:
                return self._emit_final(final.token)
            except SplitError as error:
                self._finish(error, reason="split_error")
                return False
            finally:
                del data

            if advance < 0:
                return self._violation(
                    f"split function returned negative advance {advance}"
                )
            if advance > pending:
                return self._violation(
                    f"split function advanced {advance} bytes with only {pending} buffered"
                )
            self._start += advance

            if token is None:
                if advance:
                    continue
                if self._eof:
                    self._finish_at_eof()
                    return False
                return None

            if advance:
                self._empty_tokens = 0
            elif not self._eof:
                return self._violation(
                    "split function returned a token without consuming input"
                )
            else:
                self._empty_tokens += 1
                if self._empty_tokens > MAX_CONSECUTIVE_EMPTY_TOKENS:
                    return self._violation(
                        "split function produced too many tokens without progress"
                    )

            if len(token) > self._max_token_size:
                return self._too_large()
            self._token = bytes(token)
            self._state = ScannerState.TOKEN_AVAILABLE
            return True

    def _violation(self, message: str) -> bool:
        self._finish(ProtocolViolation(message), reason="protocol_violation")
        return False

    def _too_large(self) -> bool:
        self._finish(TokenTooLarge(self._max_token_size), reason="token_too_large")
        return False

    def _emit_final(self, token: bytes | None) -> bool:
        if token is not None and len(token) > self._max_token_size:
            return self._too_large()
        self._finish(None, reason="final_token")
        if token is None:
            return False
        # Delivered now; the next scan() reports DONE.
        self._token = bytes(token)
        self._state = ScannerState.TOKEN_AVAILABLE
        return True

    def _fill(self) -> bool:
        """Make room in the arena and perform one successful read.

        Returns ``False`` when the scan has been finished instead.
        """

        if self._start > 0:
            pending = self._end - self._start
            self._buffer[:pending] = self._buffer[self._start : self._end]
            self._start, self._end = 0, pending

        if self._end == len(self._buffer) and not self._grow():
            return False

        for _ in range(MAX_CONSECUTIVE_EMPTY_READS):
            free = len(self._buffer) - self._end
            window = memoryview(self._buffer)[self._end :]
            try:
                count = self._reader.read_into(window)
            except EndOfStream as end:
                count = end.count
                self._eof = True
            except (StreamKitError, OSError, ValueError) as error:
                # ValueError covers reads from a closed stream.
                failure = (
                    error
                    if isinstance(error, StreamKitError)
                    else ResourceError("read", self._reader.name, error)
                )
                self._finish(failure, reason="read_error")
                return False
            finally:
                del window

            if not 0 <= count <= free:
                return self._violation(f"reader returned invalid count {count}")
            self._end += count
            if count > 0 or self._eof:
                return True

        self._finish(
            ProtocolViolation(
                f"reader returned no data {MAX_CONSECUTIVE_EMPTY_READS} times in a row"
            ),
            reason="no_progress",
        )
        return False

    def _grow(self) -> bool:
        limit = self._max_token_size + 1
        capacity = len(self._buffer)
        if capacity >= limit:
            return self._too_large()
        new_capacity = min(max(self._initial_size, capacity * 2), limit)
        grown = bytearray(new_capacity)
        grown[: self._end] = self._buffer[: self._end]
        self._buffer = grown
        logger.debug(
            "Scanner buffer grown",
            event="streamkit.scanner.grow",
            context={"capacity": new_capacity, "reader": self._reader.name},
        )
        return True

    def _finish_at_eof(self) -> None:
        leftover = self._end - self._start
        if leftover and self._trailing is TrailingPolicy.ERROR:
            remaining = bytes(self._buffer[self._start : self._end])
            self._finish(TruncatedTokenError(remaining), reason="truncated_token")
            return
        if leftover:
            logger.debug(
                "Discarded incomplete trailing token",
                event="streamkit.scanner.trailing_discarded",
                context={"bytes": leftover, "reader": self._reader.name},
            )
        self._finish(None, reason="eof")

    def _finish(self, error: StreamKitError | None, *, reason: str) -> None:
        if self._finished:
            return
        self._finished = True
        self._state = ScannerState.DONE
        self._error = error
        self._start = self._end = 0
        logger.debug(
            "Scanner finished",
            event="streamkit.scanner.done",
            context={
                "reason": reason,
                "reader": self._reader.name,
                "error": repr(error) if error is not None else None,
            },
        )


def _unexpected_failure(error: Exception) -> StreamKitError:
    if isinstance(error, StreamKitError):
        return error
    violation = ProtocolViolation(f"scan aborted by {type(error).__name__}: {error}")
    violation.__cause__ = error
    return violation

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

"""Capability contracts for byte streams.

Streams are nominal: a type is a :class:`Reader` or :class:`Writer` because it
subclasses one, never because it happens to expose a method with a matching
name. Each handle is single-owner; concurrent calls on the same handle must be
serialised by the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Buffer
from typing import Final, Self

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "MAX_CONSECUTIVE_EMPTY_READS",
    "ReadWriter",
    "Reader",
    "Stream",
    "Writer",
]

#: Default transfer size for copies (32KB).
DEFAULT_CHUNK_SIZE: Final[int] = 32 * 1024
#: Reads returning no data and no error before the reader is declared broken.
MAX_CONSECUTIVE_EMPTY_READS: Final[int] = 100


class Stream(ABC):
    """A handle owning zero or one underlying resource.

    The owner that opened a stream must close it on every exit path; nothing
    is reclaimed implicitly. ``close()`` is safe to call more than once.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable name of the resource (path, peer, ``<memory>``)."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once :meth:`close` has been called."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying resource."""

    def _check_closed(self) -> None:
        if self.closed:
            msg = f"I/O operation on closed stream: {self.name}"
            raise ValueError(msg)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()


class Reader(Stream):
    """Produces bytes on demand into a caller-supplied buffer."""

    @abstractmethod
    def read_into(self, buffer: memoryview) -> int:
        """Fill at most ``len(buffer)`` bytes starting at ``buffer[0]``.

        Short reads are legal and expected. Once no more bytes will ever be
        produced the reader raises :class:`~streamkit.errors.EndOfStream`;
        its ``count`` reports bytes placed by that same call, so callers must
        handle both a bare end and a final partial fill.

        Returns:
            Number of bytes written into ``buffer``.

        Raises:
            EndOfStream: The stream is exhausted.
            ResourceError: The underlying resource failed. Terminal.
            ValueError: The stream is closed.
        """


class Writer(Stream):
    """Consumes bytes from a caller-supplied buffer."""

    @abstractmethod
    def write(self, data: Buffer) -> int:
        """Hand off up to ``len(data)`` bytes.

        A return value smaller than ``len(data)`` without an exception is a
        short write; use :func:`~streamkit.streams.write_full` to retry the
        remainder.

        Raises:
            ResourceError: The underlying resource failed.
            ValueError: The stream is closed.
        """


class ReadWriter(Reader, Writer):
    """A stream that is both readable and writable."""

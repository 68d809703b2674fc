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

"""In-memory stream implementations.

``MemoryReader`` can cap each fill to imitate a slow producer, and
``MemoryWriter`` can cap each write to imitate short writes. Both are handy
for feeding scanners and exercising callers' partial-I/O handling.
"""

from __future__ import annotations

from collections.abc import Buffer
from typing import override

from ..errors import EndOfStream
from ._protocols import Reader, Writer

__all__ = [
    "MemoryReader",
    "MemoryWriter",
]


class MemoryReader(Reader):
    """Reader over a fixed byte string.

    Args:
        data: Content to produce (copied).
        chunk_size: Upper bound on bytes returned by a single fill.
        eof_with_data: Report end-of-stream together with the final fill
            (``EndOfStream(count=n)``) instead of on the following call.
    """

    __slots__ = ("_chunk_size", "_closed", "_data", "_eof_with_data", "_name", "_position")

    def __init__(
        self,
        data: Buffer,
        *,
        chunk_size: int | None = None,
        eof_with_data: bool = False,
        name: str = "<memory>",
    ) -> None:
        if chunk_size is not None and chunk_size <= 0:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        self._data = bytes(data)
        self._chunk_size = chunk_size
        self._eof_with_data = eof_with_data
        self._name = name
        self._position = 0
        self._closed = False

    @property
    @override
    def name(self) -> str:
        return self._name

    @property
    @override
    def closed(self) -> bool:
        return self._closed

    @property
    def remaining(self) -> int:
        """Bytes not yet produced."""
        return len(self._data) - self._position

    @override
    def read_into(self, buffer: memoryview) -> int:
        self._check_closed()
        if self._position >= len(self._data):
            raise EndOfStream
        count = min(len(buffer), self.remaining)
        if self._chunk_size is not None:
            count = min(count, self._chunk_size)
        buffer[:count] = self._data[self._position : self._position + count]
        self._position += count
        if self._eof_with_data and count and self._position >= len(self._data):
            raise EndOfStream(count)
        return count

    @override
    def close(self) -> None:
        self._closed = True


class MemoryWriter(Writer):
    """Writer accumulating into a growable buffer.

    Args:
        max_write: Upper bound on bytes accepted by a single write call.
    """

    __slots__ = ("_buffer", "_closed", "_max_write", "_name")

    def __init__(self, *, max_write: int | None = None, name: str = "<memory>") -> None:
        if max_write is not None and max_write < 0:
            msg = f"max_write must not be negative, got {max_write}"
            raise ValueError(msg)
        self._max_write = max_write
        self._name = name
        self._buffer = bytearray()
        self._closed = False

    @property
    @override
    def name(self) -> str:
        return self._name

    @property
    @override
    def closed(self) -> bool:
        return self._closed

    @override
    def write(self, data: Buffer) -> int:
        self._check_closed()
        with memoryview(data) as view, view.cast("B") as chunk:
            count = len(chunk)
            if self._max_write is not None:
                count = min(count, self._max_write)
            self._buffer += chunk[:count]
        return count

    def getvalue(self) -> bytes:
        """Everything written so far."""
        return bytes(self._buffer)

    @override
    def close(self) -> None:
        self._closed = True

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

"""Helpers built on the Reader and Writer contracts."""

from __future__ import annotations

from collections.abc import Buffer
from typing import Final

from ..dbc import ensure
from ..errors import (
    ConfigurationError,
    EndOfStream,
    IncompleteReadError,
    ProtocolViolation,
    ShortWriteError,
    StreamKitError,
)
from ._protocols import (
    DEFAULT_CHUNK_SIZE,
    MAX_CONSECUTIVE_EMPTY_READS,
    Reader,
    Writer,
)

__all__ = [
    "copy",
    "read_all",
    "write_full",
]

_INITIAL_READ_SIZE: Final[int] = 512


def read_all(reader: Reader, *, initial_size: int = _INITIAL_READ_SIZE) -> bytes:
    """Read ``reader`` until end-of-stream and return everything it produced.

    The buffer doubles whenever it fills, so total copying stays linear in
    the number of bytes read. End-of-stream is success.

    Raises:
        IncompleteReadError: The reader failed first, or returned no data
            too many times in a row (the cause is then a
            :class:`ProtocolViolation`). ``partial`` holds the bytes
            accumulated before the failure.
    """

    if initial_size <= 0:
        raise ConfigurationError(f"initial_size must be positive, got {initial_size}")

    buffer = bytearray(initial_size)
    filled = 0
    stalled = 0
    while True:
        if filled == len(buffer):
            grown = bytearray(len(buffer) * 2)
            grown[:filled] = buffer
            buffer = grown
        try:
            count = reader.read_into(memoryview(buffer)[filled:])
        except EndOfStream as end:
            filled += end.count
            return bytes(buffer[:filled])
        except (StreamKitError, OSError) as error:
            raise IncompleteReadError(
                reader.name, error, bytes(buffer[:filled])
            ) from error
        filled += count
        stalled = 0 if count else stalled + 1
        if stalled >= MAX_CONSECUTIVE_EMPTY_READS:
            violation = _stalled(reader)
            raise IncompleteReadError(
                reader.name, violation, bytes(buffer[:filled])
            ) from violation


def _stalled(reader: Reader) -> ProtocolViolation:
    return ProtocolViolation(
        f"{reader.name} returned no data "
        f"{MAX_CONSECUTIVE_EMPTY_READS} times in a row"
    )


def _wrote_everything(writer: Writer, data: Buffer, *, result: int) -> bool:
    with memoryview(data) as view:
        return result == view.nbytes


def _non_negative(*args: object, result: int, **kwargs: object) -> bool:
    return result >= 0


@ensure(_wrote_everything)
def write_full(writer: Writer, data: Buffer) -> int:
    """Write all of ``data``, retrying the remainder after short writes.

    Raises:
        ShortWriteError: A write accepted no bytes and reported no error.
    """

    with memoryview(data) as view, view.cast("B") as remaining:
        total = len(remaining)
        written = 0
        while written < total:
            count = writer.write(remaining[written:])
            if count <= 0:
                raise ShortWriteError(writer.name, written, total)
            written += count
    return written


@ensure(_non_negative)
def copy(dst: Writer, src: Reader, *, buffer_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Copy ``src`` into ``dst`` until end-of-stream; return bytes copied.

    Failures from either side propagate unchanged. A source that keeps
    returning no data raises :class:`ProtocolViolation`.
    """

    if buffer_size <= 0:
        raise ConfigurationError(f"buffer_size must be positive, got {buffer_size}")

    buffer = bytearray(buffer_size)
    view = memoryview(buffer)
    copied = 0
    stalled = 0
    while True:
        try:
            count = src.read_into(view)
        except EndOfStream as end:
            if end.count:
                copied += write_full(dst, view[: end.count])
            return copied
        if count:
            copied += write_full(dst, view[:count])
            stalled = 0
            continue
        stalled += 1
        if stalled >= MAX_CONSECUTIVE_EMPTY_READS:
            raise _stalled(src)

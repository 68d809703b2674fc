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

"""Reader and writer doubles with scripted behaviour."""

from __future__ import annotations

from collections import deque
from collections.abc import Buffer, Iterable
from typing import override

from streamkit.errors import EndOfStream, ResourceError
from streamkit.streams import Reader, Writer


class _TestStream:
    _name = "<test>"
    _closed = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True


class ScriptedReader(_TestStream, Reader):
    """Replay a script of fills.

    Each step is either bytes (placed into the caller's buffer, spilling into
    later calls when the buffer is smaller) or an exception instance to raise.
    ``EndOfStream`` is raised once the script is exhausted.
    """

    def __init__(self, steps: Iterable[bytes | BaseException]) -> None:
        self._steps: deque[bytes | BaseException] = deque(steps)
        self.calls = 0

    @override
    def read_into(self, buffer: memoryview) -> int:
        self.calls += 1
        if not self._steps:
            raise EndOfStream
        step = self._steps.popleft()
        if isinstance(step, BaseException):
            raise step
        count = min(len(step), len(buffer))
        buffer[:count] = step[:count]
        if count < len(step):
            self._steps.appendleft(step[count:])
        return count


class FailingReader(ScriptedReader):
    """Produce ``data`` then fail with an OS error."""

    def __init__(self, data: bytes, *, chunk: int = 4) -> None:
        pieces = [data[i : i + chunk] for i in range(0, len(data), chunk)]
        super().__init__([*pieces, OSError(5, "Input/output error")])


class EmptyReader(_TestStream, Reader):
    """Reader that never produces data and never reports the end."""

    def __init__(self) -> None:
        self.calls = 0

    @override
    def read_into(self, buffer: memoryview) -> int:
        self.calls += 1
        return 0


class MisbehavingReader(_TestStream, Reader):
    """Reader reporting a fixed, possibly impossible, count."""

    def __init__(self, count: int) -> None:
        self._count = count

    @override
    def read_into(self, buffer: memoryview) -> int:
        return self._count


class StalledWriter(_TestStream, Writer):
    """Writer accepting ``accept`` bytes once, then nothing."""

    def __init__(self, accept: int = 0) -> None:
        self._accept = accept
        self.received = bytearray()

    @override
    def write(self, data: Buffer) -> int:
        with memoryview(data) as view:
            count = min(self._accept, len(view))
            self.received += view[:count]
        self._accept = 0
        return count


class FailingWriter(_TestStream, Writer):
    """Writer raising a resource error on every call."""

    @override
    def write(self, data: Buffer) -> int:
        raise ResourceError("write", self.name, OSError(28, "No space left on device"))

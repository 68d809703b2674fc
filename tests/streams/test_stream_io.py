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

"""Tests for the aggregate reader and copy helpers."""

from __future__ import annotations

import pytest
from hypothesis import given, settings, strategies as st

from streamkit.errors import (
    ConfigurationError,
    IncompleteReadError,
    ProtocolViolation,
    ResourceError,
    ShortWriteError,
)
from streamkit.streams import (
    MAX_CONSECUTIVE_EMPTY_READS,
    MemoryReader,
    MemoryWriter,
    copy,
    read_all,
    write_full,
)
from tests.helpers import (
    EmptyReader,
    FailingReader,
    FailingWriter,
    ScriptedReader,
    StalledWriter,
)


class TestReadAll:
    @pytest.mark.parametrize("chunk_size", [1, 7, 4096])
    def test_chunking_does_not_change_result(self, chunk_size: int) -> None:
        data = bytes(range(256)) * 40
        assert read_all(MemoryReader(data, chunk_size=chunk_size)) == data

    def test_empty_source(self) -> None:
        assert read_all(MemoryReader(b"")) == b""

    def test_final_fill_delivered_with_end_of_stream(self) -> None:
        data = b"x" * 1000
        reader = MemoryReader(data, chunk_size=300, eof_with_data=True)
        assert read_all(reader) == data

    def test_tolerates_empty_reads(self) -> None:
        reader = ScriptedReader([b"ab", b"", b"", b"cd"])
        assert read_all(reader) == b"abcd"

    def test_reader_that_never_progresses_is_abandoned(self) -> None:
        reader = ScriptedReader([b"ab", *[b""] * MAX_CONSECUTIVE_EMPTY_READS, b"cd"])

        with pytest.raises(IncompleteReadError) as exc_info:
            read_all(reader)

        assert exc_info.value.partial == b"ab"
        assert isinstance(exc_info.value.cause, ProtocolViolation)
        assert reader.calls == MAX_CONSECUTIVE_EMPTY_READS + 1

    def test_empty_reads_below_the_limit_are_tolerated(self) -> None:
        empties = [b""] * (MAX_CONSECUTIVE_EMPTY_READS - 1)
        reader = ScriptedReader([b"ab", *empties, b"cd", *empties, b"ef"])
        assert read_all(reader) == b"abcdef"

    def test_small_initial_size_grows(self) -> None:
        data = b"0123456789" * 10
        assert read_all(MemoryReader(data), initial_size=1) == data

    def test_failure_keeps_partial_data(self) -> None:
        reader = FailingReader(b"partial content")

        with pytest.raises(IncompleteReadError) as exc_info:
            read_all(reader)

        error = exc_info.value
        assert error.partial == b"partial content"
        assert isinstance(error.cause, OSError)
        assert error.errno == 5

    def test_library_failure_is_wrapped(self) -> None:
        cause = ResourceError("read", "remote", OSError(104, "Connection reset by peer"))
        reader = ScriptedReader([b"abc", cause])

        with pytest.raises(IncompleteReadError) as exc_info:
            read_all(reader)

        assert exc_info.value.partial == b"abc"
        assert exc_info.value.cause is cause

    def test_rejects_non_positive_initial_size(self) -> None:
        with pytest.raises(ConfigurationError):
            read_all(MemoryReader(b"abc"), initial_size=0)

    @given(
        data=st.binary(max_size=2048),
        chunk_size=st.integers(min_value=1, max_value=600),
        eof_with_data=st.booleans(),
    )
    @settings(max_examples=100)
    def test_any_chunking_reproduces_source(
        self, data: bytes, chunk_size: int, eof_with_data: bool
    ) -> None:
        reader = MemoryReader(data, chunk_size=chunk_size, eof_with_data=eof_with_data)
        assert read_all(reader) == data


class TestWriteFull:
    def test_retries_short_writes(self) -> None:
        writer = MemoryWriter(max_write=3)
        assert write_full(writer, b"abcdefghij") == 10
        assert writer.getvalue() == b"abcdefghij"

    def test_stalled_writer_raises_short_write(self) -> None:
        writer = StalledWriter(accept=4)

        with pytest.raises(ShortWriteError) as exc_info:
            write_full(writer, b"abcdefgh")

        assert exc_info.value.written == 4
        assert exc_info.value.expected == 8
        assert bytes(writer.received) == b"abcd"

    def test_writer_errors_propagate(self) -> None:
        with pytest.raises(ResourceError, match="No space left"):
            write_full(FailingWriter(), b"data")

    def test_empty_data_writes_nothing(self) -> None:
        writer = StalledWriter()
        assert write_full(writer, b"") == 0

    def test_accepts_non_byte_buffers(self) -> None:
        writer = MemoryWriter()
        write_full(writer, memoryview(b"abcd").cast("H"))
        assert writer.getvalue() == b"abcd"


class TestCopy:
    def test_copies_until_end_of_stream(self) -> None:
        source = MemoryReader(b"stream data" * 100, chunk_size=17)
        sink = MemoryWriter(max_write=5)

        assert copy(sink, source, buffer_size=64) == 1100
        assert sink.getvalue() == b"stream data" * 100

    def test_copies_final_fill(self) -> None:
        source = MemoryReader(b"tail", eof_with_data=True)
        sink = MemoryWriter()
        assert copy(sink, source) == 4
        assert sink.getvalue() == b"tail"

    def test_source_that_never_progresses_is_abandoned(self) -> None:
        source = EmptyReader()

        with pytest.raises(ProtocolViolation, match="no data"):
            copy(MemoryWriter(), source)

        assert source.calls == MAX_CONSECUTIVE_EMPTY_READS

    def test_rejects_non_positive_buffer(self) -> None:
        with pytest.raises(ConfigurationError):
            copy(MemoryWriter(), MemoryReader(b""), buffer_size=0)

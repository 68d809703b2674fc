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

"""Tests for the streamkit exception hierarchy."""

from __future__ import annotations

import errno

import pytest

from streamkit.errors import (
    ConfigurationError,
    EndOfStream,
    FinalToken,
    IncompleteReadError,
    MalformedEncodingError,
    ProtocolViolation,
    ResourceError,
    ScannerStateError,
    ShortWriteError,
    SplitError,
    StreamKitError,
    TokenTooLarge,
    TruncatedTokenError,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error_type",
        [
            ConfigurationError,
            ProtocolViolation,
            ScannerStateError,
            SplitError,
        ],
    )
    def test_library_errors_share_base(self, error_type: type[Exception]) -> None:
        assert issubclass(error_type, StreamKitError)

    def test_termination_signals_are_not_failures(self) -> None:
        """EndOfStream and FinalToken must never be caught as StreamKitError."""
        assert not issubclass(EndOfStream, StreamKitError)
        assert not issubclass(FinalToken, StreamKitError)
        assert issubclass(EndOfStream, EOFError)

    def test_value_errors_for_bad_input(self) -> None:
        assert issubclass(ConfigurationError, ValueError)
        assert issubclass(TokenTooLarge, ValueError)
        assert issubclass(MalformedEncodingError, SplitError)
        assert issubclass(TruncatedTokenError, ValueError)

    def test_partial_io_errors_are_resource_errors(self) -> None:
        assert issubclass(IncompleteReadError, ResourceError)
        assert issubclass(ShortWriteError, ResourceError)


class TestResourceError:
    def test_message_includes_operation_path_and_reason(self) -> None:
        cause = FileNotFoundError(errno.ENOENT, "No such file or directory")
        error = ResourceError("open", "/tmp/missing", cause)

        assert str(error) == "open /tmp/missing: No such file or directory"
        assert error.op == "open"
        assert error.path == "/tmp/missing"
        assert error.cause is cause
        assert error.errno == errno.ENOENT

    def test_without_path_or_os_cause(self) -> None:
        error = ResourceError("read", cause=RuntimeError("boom"))
        assert str(error) == "read: boom"
        assert error.errno is None

    def test_incomplete_read_keeps_partial_data(self) -> None:
        error = IncompleteReadError("data.bin", OSError(errno.EIO, "I/O error"), b"abc")
        assert error.partial == b"abc"
        assert error.op == "read_all"
        assert "after 3 bytes" in str(error)
        assert error.errno == errno.EIO

    def test_short_write_reports_progress(self) -> None:
        error = ShortWriteError("<memory>", 4, 10)
        assert error.written == 4
        assert error.expected == 10
        assert str(error) == "short write: 4 of 10 bytes"


class TestSignals:
    def test_end_of_stream_defaults_to_zero_count(self) -> None:
        assert EndOfStream().count == 0
        assert EndOfStream(7).count == 7

    def test_final_token_carries_optional_token(self) -> None:
        assert FinalToken().token is None
        assert FinalToken(b"last").token == b"last"

    def test_scanner_error_details(self) -> None:
        assert TokenTooLarge(64).limit == 64
        assert TruncatedTokenError(b"abc").remaining == b"abc"
        malformed = MalformedEncodingError(b"\xff", "invalid start byte")
        assert malformed.data == b"\xff"
        assert malformed.reason == "invalid start byte"

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

"""Portable byte streams, an aggregate reader and a buffered token scanner."""

from __future__ import annotations

from .config import ScannerConfig, StreamKitConfig, TrailingPolicy, load_config
from .errors import (
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
from .scanner import (
    Scanner,
    ScannerState,
    SplitFunc,
    scan_bytes,
    scan_lines,
    scan_runes,
    scan_words,
)
from .streams import (
    AccessMode,
    FileStream,
    MemoryReader,
    MemoryWriter,
    OpenFlag,
    Reader,
    ReadWriter,
    SocketStream,
    Stream,
    Writer,
    copy,
    create,
    open_file,
    open_read,
    read_all,
    stderr,
    stdin,
    stdout,
    write_full,
)

__all__ = [
    "AccessMode",
    "ConfigurationError",
    "EndOfStream",
    "FileStream",
    "FinalToken",
    "IncompleteReadError",
    "MalformedEncodingError",
    "MemoryReader",
    "MemoryWriter",
    "OpenFlag",
    "ProtocolViolation",
    "ReadWriter",
    "Reader",
    "ResourceError",
    "Scanner",
    "ScannerConfig",
    "ScannerState",
    "ScannerStateError",
    "ShortWriteError",
    "SocketStream",
    "SplitError",
    "SplitFunc",
    "Stream",
    "StreamKitConfig",
    "StreamKitError",
    "TokenTooLarge",
    "TrailingPolicy",
    "TruncatedTokenError",
    "Writer",
    "copy",
    "create",
    "load_config",
    "open_file",
    "open_read",
    "read_all",
    "scan_bytes",
    "scan_lines",
    "scan_runes",
    "scan_words",
    "stderr",
    "stdin",
    "stdout",
    "write_full",
]

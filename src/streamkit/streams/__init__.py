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

"""Byte stream contracts and their implementations.

Contracts:
    Reader: Fills caller buffers, signals exhaustion with ``EndOfStream``.
    Writer: Consumes caller buffers, may write short.
    ReadWriter: Both.

Implementations:
    FileStream: OS file descriptor opened under an AccessMode and OpenFlags.
    MemoryReader / MemoryWriter: In-memory buffers.
    SocketStream: Connected stream socket.

Example usage::

    from streamkit.streams import AccessMode, OpenFlag, open_file, read_all

    with open_file("log.txt", AccessMode.READ_ONLY) as stream:
        content = read_all(stream)
"""

from __future__ import annotations

from ._file import (
    DEFAULT_PERMISSIONS,
    FileStream,
    create,
    open_file,
    open_read,
    stderr,
    stdin,
    stdout,
)
from ._flags import (
    HAS_NATIVE_SYNC,
    AccessMode,
    OpenFlag,
    os_open_flags,
    resolve_access_mode,
)
from ._io import copy, read_all, write_full
from ._memory import MemoryReader, MemoryWriter
from ._protocols import (
    DEFAULT_CHUNK_SIZE,
    MAX_CONSECUTIVE_EMPTY_READS,
    Reader,
    ReadWriter,
    Stream,
    Writer,
)
from ._socket import SocketStream

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_PERMISSIONS",
    "HAS_NATIVE_SYNC",
    "MAX_CONSECUTIVE_EMPTY_READS",
    "AccessMode",
    "FileStream",
    "MemoryReader",
    "MemoryWriter",
    "OpenFlag",
    "ReadWriter",
    "Reader",
    "SocketStream",
    "Stream",
    "Writer",
    "copy",
    "create",
    "open_file",
    "open_read",
    "os_open_flags",
    "read_all",
    "resolve_access_mode",
    "stderr",
    "stdin",
    "stdout",
    "write_full",
]

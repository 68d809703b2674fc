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

"""File-backed streams opened under explicit mode and flag combinations.

Files are opened with ``os.open`` so every flag maps to the platform
primitive. In particular ``APPEND`` relies on ``O_APPEND``: the kernel moves
each write to the end of the file atomically, which holds across independent
processes. Nothing here emulates it with a seek followed by a write.
"""

from __future__ import annotations

import os
from collections.abc import Buffer
from dataclasses import dataclass, field
from typing import override

from ..dbc import require
from ..errors import EndOfStream, ResourceError
from ..logging import StructuredLogger, get_logger
from ._flags import (
    HAS_NATIVE_SYNC,
    AccessMode,
    OpenFlag,
    os_open_flags,
    resolve_access_mode,
)
from ._protocols import ReadWriter

__all__ = [
    "DEFAULT_PERMISSIONS",
    "FileStream",
    "create",
    "open_file",
    "open_read",
    "stderr",
    "stdin",
    "stdout",
]

#: Permission bits for newly created files, before the process umask.
DEFAULT_PERMISSIONS = 0o666

logger: StructuredLogger = get_logger(__name__, context={"component": "file"})


@dataclass(slots=True, eq=False)
class FileStream(ReadWriter):
    """Readable and writable stream over an OS file descriptor.

    Use :meth:`open` (or :func:`open_file`, :func:`open_read`,
    :func:`create`) to open a path, and :meth:`from_fd` to wrap a descriptor
    supplied by the environment.

    Example::

        with open_file("events.log", AccessMode.WRITE_ONLY,
                       OpenFlag.CREATE | OpenFlag.APPEND) as stream:
            write_full(stream, b"started\\n")
    """

    _fd: int
    _name: str
    _mode: AccessMode
    _flags: OpenFlag = OpenFlag.NONE
    _owns_fd: bool = True
    _closed: bool = field(default=False, init=False)

    @classmethod
    def open(
        cls,
        path: str | os.PathLike[str],
        mode: AccessMode | str,
        flags: OpenFlag = OpenFlag.NONE,
        permissions: int = DEFAULT_PERMISSIONS,
    ) -> FileStream:
        """Open ``path`` with an access mode and modifier flags.

        ``mode`` and ``flags`` are validated before any OS call.
        ``permissions`` only applies when the file is created.

        Raises:
            ConfigurationError: The mode is missing or ambiguous, or
                ``CREATE_EXCLUSIVE`` was given without ``CREATE``.
            ResourceError: The OS refused the open (not found, permission
                denied, already exists...). ``cause`` holds the ``OSError``.
        """

        access = resolve_access_mode(mode)
        os_flags = os_open_flags(access, flags)
        name = os.fspath(path)
        try:
            fd = os.open(name, os_flags, permissions)
        except OSError as error:
            logger.debug(
                "Open failed",
                event="streamkit.file.open_failed",
                context={"path": name, "mode": access.name, "errno": error.errno},
            )
            raise ResourceError("open", name, error) from error

        logger.debug(
            "Opened file stream",
            event="streamkit.file.open",
            context={"path": name, "mode": access.name, "flags": str(flags)},
        )
        return cls(_fd=fd, _name=name, _mode=access, _flags=flags)

    @classmethod
    @require(lambda cls, fd, *args, **kwargs: (fd >= 0, f"fd={fd}"))
    def from_fd(
        cls,
        fd: int,
        name: str,
        *,
        mode: AccessMode = AccessMode.READ_WRITE,
        owns_fd: bool = False,
    ) -> FileStream:
        """Wrap an already open descriptor.

        When ``owns_fd`` is false, :meth:`close` marks the stream closed but
        leaves the descriptor open for its real owner.
        """

        return cls(_fd=fd, _name=name, _mode=mode, _owns_fd=owns_fd)

    @property
    @override
    def name(self) -> str:
        return self._name

    @property
    def mode(self) -> AccessMode:
        return self._mode

    @property
    def flags(self) -> OpenFlag:
        return self._flags

    @property
    @override
    def closed(self) -> bool:
        return self._closed

    def fileno(self) -> int:
        """Underlying descriptor."""
        self._check_closed()
        return self._fd

    @override
    def read_into(self, buffer: memoryview) -> int:
        self._check_closed()
        if not len(buffer):
            return 0
        try:
            count = os.readv(self._fd, [buffer])
        except OSError as error:
            raise ResourceError("read", self._name, error) from error
        if count == 0:
            raise EndOfStream
        return count

    @override
    def write(self, data: Buffer) -> int:
        self._check_closed()
        try:
            written = os.write(self._fd, data)
            if OpenFlag.SYNC_DURABLE in self._flags and not HAS_NATIVE_SYNC:
                os.fsync(self._fd)
        except OSError as error:
            raise ResourceError("write", self._name, error) from error
        return written

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the stream position and return the new absolute offset.

        Writes on an ``APPEND`` stream still land at the end of the file.
        """

        self._check_closed()
        if whence not in {os.SEEK_SET, os.SEEK_CUR, os.SEEK_END}:
            msg = f"Invalid whence value: {whence}"
            raise ValueError(msg)
        try:
            return os.lseek(self._fd, offset, whence)
        except OSError as error:
            raise ResourceError("seek", self._name, error) from error

    def sync(self) -> None:
        """Flush file contents to durable storage."""
        self._check_closed()
        try:
            os.fsync(self._fd)
        except OSError as error:
            raise ResourceError("sync", self._name, error) from error

    def size(self) -> int:
        """Current size of the file in bytes."""
        self._check_closed()
        try:
            return os.fstat(self._fd).st_size
        except OSError as error:
            raise ResourceError("stat", self._name, error) from error

    @override
    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not self._owns_fd:
            return
        try:
            os.close(self._fd)
        except OSError as error:
            raise ResourceError("close", self._name, error) from error
        logger.debug(
            "Closed file stream",
            event="streamkit.file.close",
            context={"path": self._name},
        )


def open_file(
    path: str | os.PathLike[str],
    mode: AccessMode | str,
    flags: OpenFlag = OpenFlag.NONE,
    permissions: int = DEFAULT_PERMISSIONS,
) -> FileStream:
    """Open ``path`` under ``mode`` and ``flags``. See :meth:`FileStream.open`."""
    return FileStream.open(path, mode, flags, permissions)


def open_read(path: str | os.PathLike[str]) -> FileStream:
    """Open an existing file read-only."""
    return FileStream.open(path, AccessMode.READ_ONLY)


def create(
    path: str | os.PathLike[str], permissions: int = DEFAULT_PERMISSIONS
) -> FileStream:
    """Open ``path`` read-write, creating it or truncating existing content."""
    return FileStream.open(
        path, AccessMode.READ_WRITE, OpenFlag.CREATE | OpenFlag.TRUNCATE, permissions
    )


def stdin() -> FileStream:
    """Non-owning read stream over descriptor 0.

    Terminal-backed input may be line-buffered by the terminal driver before
    any byte reaches this stream.
    """
    return FileStream.from_fd(0, "<stdin>", mode=AccessMode.READ_ONLY)


def stdout() -> FileStream:
    """Non-owning write stream over descriptor 1."""
    return FileStream.from_fd(1, "<stdout>", mode=AccessMode.WRITE_ONLY)


def stderr() -> FileStream:
    """Non-owning write stream over descriptor 2."""
    return FileStream.from_fd(2, "<stderr>", mode=AccessMode.WRITE_ONLY)


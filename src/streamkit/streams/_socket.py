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

"""Network-backed stream over a connected socket.

Only byte transport is provided; framing and protocol belong to callers.
Deadlines are applied to the socket itself (``timeout``), never emulated here.
"""

from __future__ import annotations

import socket
from collections.abc import Buffer
from typing import override

from ..errors import EndOfStream, ResourceError
from ._protocols import ReadWriter

__all__ = ["SocketStream"]


class SocketStream(ReadWriter):
    """Readable and writable stream over a connected stream socket."""

    __slots__ = ("_closed", "_name", "_sock")

    def __init__(self, sock: socket.socket, *, name: str | None = None) -> None:
        self._sock = sock
        self._name = name if name is not None else _peer_name(sock)
        self._closed = False

    @classmethod
    def connect(
        cls, address: tuple[str, int], *, timeout: float | None = None
    ) -> SocketStream:
        """Dial ``address`` and wrap the connected socket.

        Raises:
            ResourceError: The connection could not be established.
        """

        label = f"{address[0]}:{address[1]}"
        try:
            sock = socket.create_connection(address, timeout=timeout)
        except OSError as error:
            raise ResourceError("connect", label, error) from error
        return cls(sock, name=label)

    @property
    @override
    def name(self) -> str:
        return self._name

    @property
    @override
    def closed(self) -> bool:
        return self._closed

    @override
    def read_into(self, buffer: memoryview) -> int:
        self._check_closed()
        if not len(buffer):
            return 0
        try:
            count = self._sock.recv_into(buffer)
        except OSError as error:
            raise ResourceError("read", self._name, error) from error
        if count == 0:
            raise EndOfStream
        return count

    @override
    def write(self, data: Buffer) -> int:
        self._check_closed()
        try:
            return self._sock.send(data)
        except OSError as error:
            raise ResourceError("write", self._name, error) from error

    def close_write(self) -> None:
        """Half-close: signal end-of-stream to the peer, keep reading."""
        self._check_closed()
        try:
            self._sock.shutdown(socket.SHUT_WR)
        except OSError as error:
            raise ResourceError("shutdown", self._name, error) from error

    @override
    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._sock.close()


def _peer_name(sock: socket.socket) -> str:
    try:
        peer = sock.getpeername()
    except OSError:
        return "<socket>"
    if isinstance(peer, tuple) and len(peer) >= 2:  # noqa: PLR2004
        return f"{peer[0]}:{peer[1]}"
    return str(peer) or "<socket>"

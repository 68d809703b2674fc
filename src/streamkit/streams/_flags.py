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

"""Access modes and open flags for file streams."""

from __future__ import annotations

import os
from collections.abc import Collection
from enum import Enum, Flag, auto
from typing import Final, cast

from ..errors import ConfigurationError

__all__ = [
    "HAS_NATIVE_SYNC",
    "AccessMode",
    "OpenFlag",
    "os_open_flags",
    "resolve_access_mode",
]

_O_SYNC: Final[int] = getattr(os, "O_SYNC", 0)
_O_BINARY: Final[int] = getattr(os, "O_BINARY", 0)

#: False on platforms without ``O_SYNC``; file streams then fsync per write.
HAS_NATIVE_SYNC: Final[bool] = _O_SYNC != 0


class AccessMode(Enum):
    """Exactly one of these must be chosen when opening a file."""

    READ_ONLY = os.O_RDONLY
    WRITE_ONLY = os.O_WRONLY
    READ_WRITE = os.O_RDWR

    @property
    def readable(self) -> bool:
        return self is not AccessMode.WRITE_ONLY

    @property
    def writable(self) -> bool:
        return self is not AccessMode.READ_ONLY


class OpenFlag(Flag):
    """Independent modifiers combined with an :class:`AccessMode`."""

    NONE = 0
    CREATE = auto()
    CREATE_EXCLUSIVE = auto()
    TRUNCATE = auto()
    APPEND = auto()
    SYNC_DURABLE = auto()


_MODE_ALIASES: Final[dict[str, AccessMode]] = {
    "r": AccessMode.READ_ONLY,
    "read": AccessMode.READ_ONLY,
    "read-only": AccessMode.READ_ONLY,
    "read_only": AccessMode.READ_ONLY,
    "w": AccessMode.WRITE_ONLY,
    "write": AccessMode.WRITE_ONLY,
    "write-only": AccessMode.WRITE_ONLY,
    "write_only": AccessMode.WRITE_ONLY,
    "rw": AccessMode.READ_WRITE,
    "r+": AccessMode.READ_WRITE,
    "read-write": AccessMode.READ_WRITE,
    "read_write": AccessMode.READ_WRITE,
}

_FLAG_BITS: Final[tuple[tuple[OpenFlag, int], ...]] = (
    (OpenFlag.CREATE, os.O_CREAT),
    (OpenFlag.CREATE_EXCLUSIVE, os.O_EXCL),
    (OpenFlag.TRUNCATE, os.O_TRUNC),
    (OpenFlag.APPEND, os.O_APPEND),
    (OpenFlag.SYNC_DURABLE, _O_SYNC),
)


def resolve_access_mode(mode: object) -> AccessMode:
    """Return the single :class:`AccessMode` described by ``mode``.

    Accepts an ``AccessMode``, one of its names or aliases (``"r"``, ``"w"``,
    ``"rw"``, ``"read-only"``...), or a collection holding exactly one of
    those. Missing or ambiguous modes raise :class:`ConfigurationError`.
    """

    if isinstance(mode, AccessMode):
        return mode
    if mode is None:
        raise ConfigurationError("an access mode is required")
    if isinstance(mode, str):
        key = mode.strip().lower()
        resolved = _MODE_ALIASES.get(key)
        if resolved is None:
            resolved = AccessMode.__members__.get(key.upper().replace("-", "_"))
        if resolved is None:
            raise ConfigurationError(f"unknown access mode: {mode!r}")
        return resolved
    if isinstance(mode, Collection):
        candidates = {
            resolve_access_mode(item) for item in cast(Collection[object], mode)
        }
        if len(candidates) != 1:
            names = ", ".join(sorted(c.name for c in candidates)) or "none"
            raise ConfigurationError(
                f"exactly one access mode is required (got: {names})"
            )
        return candidates.pop()
    raise ConfigurationError(f"unsupported access mode: {mode!r}")


def os_open_flags(mode: AccessMode, flags: OpenFlag = OpenFlag.NONE) -> int:
    """Validate ``mode``/``flags`` and translate them to ``os.open`` bits.

    Raises:
        ConfigurationError: ``CREATE_EXCLUSIVE`` was given without ``CREATE``.
    """

    if OpenFlag.CREATE_EXCLUSIVE in flags and OpenFlag.CREATE not in flags:
        raise ConfigurationError("CREATE_EXCLUSIVE requires CREATE")

    bits = mode.value | _O_BINARY
    for flag, os_bit in _FLAG_BITS:
        if flag in flags:
            bits |= os_bit
    return bits

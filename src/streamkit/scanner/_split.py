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

"""Split functions deciding token boundaries for :class:`Scanner`.

A split function receives the unconsumed bytes and whether the source is
exhausted, and returns ``(advance, token)``:

- ``(0, None)`` asks for more data.
- ``(n, None)`` consumes ``n`` bytes without producing a token.
- ``(n, token)`` consumes ``n`` bytes and produces ``token``. ``n`` must be
  positive unless ``at_eof`` is true.

Errors are reported by raising a :class:`~streamkit.errors.SplitError`;
raising :class:`~streamkit.errors.FinalToken` delivers a last token and
stops the scan. ``data`` is a view into the scanner's arena and is only
valid for the duration of the call.
"""

from __future__ import annotations

import codecs
import re
from collections.abc import Callable
from typing import Final

from ..dbc import pure
from ..errors import MalformedEncodingError

__all__ = [
    "SplitFunc",
    "scan_bytes",
    "scan_lines",
    "scan_runes",
    "scan_words",
]

type SplitFunc = Callable[[memoryview, bool], tuple[int, bytes | None]]

_NEWLINE: Final = re.compile(rb"\n")
_SPACE: Final = re.compile(rb"[ \t\n\v\f\r]")
_LEADING_SPACE: Final = re.compile(rb"[ \t\n\v\f\r]*")


@pure
def scan_lines(data: memoryview, at_eof: bool) -> tuple[int, bytes | None]:
    """Split on ``\\n``, dropping one trailing ``\\r`` from each line.

    The last line is returned even without a terminating newline. An empty
    final line is not.
    """

    if at_eof and not data:
        return 0, None
    match = _NEWLINE.search(data)
    if match is not None:
        end = match.start()
        return end + 1, _drop_cr(data[:end])
    if at_eof:
        return len(data), _drop_cr(data)
    return 0, None


@pure
def scan_words(data: memoryview, at_eof: bool) -> tuple[int, bytes | None]:
    """Split on runs of ASCII whitespace, never producing empty tokens."""

    leading = _LEADING_SPACE.match(data)
    start = leading.end() if leading is not None else 0
    separator = _SPACE.search(data, start)
    if separator is not None:
        end = separator.start()
        return end + 1, bytes(data[start:end])
    if at_eof and len(data) > start:
        return len(data), bytes(data[start:])
    return start, None


@pure
def scan_bytes(data: memoryview, at_eof: bool) -> tuple[int, bytes | None]:
    """Return each byte as its own token."""

    if not data:
        return 0, None
    return 1, bytes(data[:1])


@pure
def scan_runes(data: memoryview, at_eof: bool) -> tuple[int, bytes | None]:
    """Return each UTF-8 encoded character as its own token.

    Overlong forms, surrogates, code points above U+10FFFF and stray
    continuation bytes raise :class:`MalformedEncodingError`. An invalid
    prefix fails as soon as it is buffered; a valid but incomplete sequence
    waits for more data, and fails if the stream ends first.
    """

    if not data:
        return 0, None
    lead = data[0]
    if lead < 0x80:  # noqa: PLR2004
        return 1, bytes(data[:1])

    width = _sequence_width(lead)
    if width == 0:
        raise MalformedEncodingError(bytes(data[:1]), "invalid start byte")

    available = bytes(data[: min(width, len(data))])
    decoder = codecs.getincrementaldecoder("utf-8")()
    try:
        decoded = decoder.decode(available, final=at_eof or len(available) == width)
    except UnicodeDecodeError as error:
        raise MalformedEncodingError(available, error.reason) from None
    if not decoded:
        return 0, None
    return width, available


def _sequence_width(lead: int) -> int:
    if 0xC2 <= lead <= 0xDF:  # noqa: PLR2004
        return 2
    if 0xE0 <= lead <= 0xEF:  # noqa: PLR2004
        return 3
    if 0xF0 <= lead <= 0xF4:  # noqa: PLR2004
        return 4
    return 0


def _drop_cr(line: memoryview) -> bytes:
    if line and line[-1] == ord("\r"):
        return bytes(line[:-1])
    return bytes(line)

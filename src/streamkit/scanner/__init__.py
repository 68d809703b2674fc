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

"""Token scanning over byte streams.

Example usage::

    from streamkit.scanner import Scanner, scan_words
    from streamkit.streams import open_read

    with open_read("words.txt") as stream:
        for word in Scanner(stream, scan_words):
            print(word.decode())
"""

from __future__ import annotations

from ..config import ScannerConfig, TrailingPolicy
from ._scanner import (
    MAX_CONSECUTIVE_EMPTY_READS,
    MAX_CONSECUTIVE_EMPTY_TOKENS,
    Scanner,
    ScannerState,
)
from ._split import SplitFunc, scan_bytes, scan_lines, scan_runes, scan_words

__all__ = [
    "MAX_CONSECUTIVE_EMPTY_READS",
    "MAX_CONSECUTIVE_EMPTY_TOKENS",
    "Scanner",
    "ScannerConfig",
    "ScannerState",
    "SplitFunc",
    "TrailingPolicy",
    "scan_bytes",
    "scan_lines",
    "scan_runes",
    "scan_words",
]

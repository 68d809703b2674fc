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

"""Configuration for scanners, file streams and the ``streamkit`` CLI.

Settings resolve in order: configuration file (TOML or YAML), environment
variables, then explicit CLI overrides.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from pathlib import Path
from typing import Any, Final, cast

import yaml

from .errors import ConfigurationError

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_INITIAL_BUFFER_SIZE",
    "DEFAULT_MAX_TOKEN_SIZE",
    "ScannerConfig",
    "StreamKitConfig",
    "TrailingPolicy",
    "load_config",
]

DEFAULT_CONFIG_PATH: Final[Path] = Path("~/.config/streamkit/config.toml")

#: Arena size allocated on the first fill (4KB).
DEFAULT_INITIAL_BUFFER_SIZE: Final[int] = 4096
#: Largest token a scanner will buffer before failing (64KB).
DEFAULT_MAX_TOKEN_SIZE: Final[int] = 64 * 1024

ENV_BUFFER_SIZE = "STREAMKIT_BUFFER_SIZE"
ENV_MAX_TOKEN_SIZE = "STREAMKIT_MAX_TOKEN_SIZE"
ENV_TRAILING = "STREAMKIT_TRAILING"
ENV_FILE_PERMISSIONS = "STREAMKIT_FILE_PERMISSIONS"


class TrailingPolicy(StrEnum):
    """What a scanner does with an incomplete token left at end-of-stream."""

    DISCARD = "discard"
    """Drop the leftover bytes and finish cleanly."""

    ERROR = "error"
    """Finish with a :class:`~streamkit.errors.TruncatedTokenError`."""


@dataclass(frozen=True, slots=True)
class ScannerConfig:
    """Buffer sizing and end-of-stream policy for a scanner."""

    initial_buffer_size: int = DEFAULT_INITIAL_BUFFER_SIZE
    max_token_size: int = DEFAULT_MAX_TOKEN_SIZE
    trailing: TrailingPolicy = TrailingPolicy.DISCARD

    def __post_init__(self) -> None:
        if self.initial_buffer_size <= 0:
            msg = f"initial_buffer_size must be positive, got {self.initial_buffer_size}"
            raise ConfigurationError(msg)
        if self.max_token_size <= 0:
            msg = f"max_token_size must be positive, got {self.max_token_size}"
            raise ConfigurationError(msg)
        if self.initial_buffer_size > self.max_token_size:
            msg = (
                f"initial_buffer_size ({self.initial_buffer_size}) exceeds "
                f"max_token_size ({self.max_token_size})"
            )
            raise ConfigurationError(msg)
        object.__setattr__(self, "trailing", _coerce_trailing(self.trailing))


@dataclass(frozen=True, slots=True)
class StreamKitConfig:
    """Resolved configuration for the ``streamkit`` CLI."""

    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    file_permissions: int = 0o666
    log_level: str | None = None
    json_logs: bool = False


def load_config(
    path: Path | Mapping[str, Any] | None,
    cli_overrides: Mapping[str, object] | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> StreamKitConfig:
    """Load and validate streamkit configuration.

    Parameters
    ----------
    path:
        Configuration file (``.toml``, ``.yaml`` or ``.yml``). ``None`` falls
        back to ``~/.config/streamkit/config.toml``, which may be absent.
        Tests may pass an in-memory mapping to skip filesystem I/O.
    cli_overrides:
        Flat overrides; keys mirror the normalised setting names
        (``initial_buffer_size``, ``max_token_size``, ``trailing``,
        ``file_permissions``, ``log_level``, ``json_logs``). ``None`` values
        are ignored.
    env:
        Optional environment mapping. Defaults to :data:`os.environ`.

    Raises
    ------
    ConfigurationError
        The file is malformed or a value is invalid.
    """

    env_map = dict(os.environ if env is None else env)

    if isinstance(path, Mapping):
        raw: dict[str, object] = dict(cast(Mapping[str, object], path))
    else:
        config_path = path if path is not None else DEFAULT_CONFIG_PATH.expanduser()
        raw = _load_config_file(config_path)

    settings = _normalise_config(raw)
    settings = _apply_environment_overrides(settings, env_map)
    if cli_overrides:
        settings.update({k: v for k, v in cli_overrides.items() if v is not None})
    return _build_config(settings)


def _load_config_file(path: Path) -> dict[str, object]:
    if not path.exists():
        if path == DEFAULT_CONFIG_PATH.expanduser():
            return {}
        msg = f"Configuration file not found: {path}"
        raise ConfigurationError(msg)

    suffix = path.suffix.lower()
    data: object
    try:
        if suffix == ".toml" or not suffix:
            with path.open("rb") as handle:
                data = tomllib.load(handle)
        elif suffix in {".yaml", ".yml"}:
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
        else:
            msg = f"Unsupported configuration format: {path.suffix}"
            raise ConfigurationError(msg)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as error:
        msg = f"Invalid configuration file {path}: {error}"
        raise ConfigurationError(msg) from error

    if not isinstance(data, MutableMapping):
        msg = "Configuration file must contain a mapping at the root."
        raise ConfigurationError(msg)

    typed: dict[str, object] = {}
    for key, value in cast(MutableMapping[object, object], data).items():
        if not isinstance(key, str):
            msg = f"Configuration keys must be strings (got {key!r})."
            raise ConfigurationError(msg)
        typed[key] = value
    return typed


def _normalise_config(raw: Mapping[str, object]) -> dict[str, object]:
    settings: dict[str, object] = {
        key: raw[key]
        for key in ("file_permissions", "log_level", "json_logs")
        if key in raw
    }

    scanner_obj = raw.get("scanner")
    if isinstance(scanner_obj, Mapping):
        scanner = cast(Mapping[str, object], scanner_obj)
        for key in ("initial_buffer_size", "max_token_size", "trailing"):
            if key in scanner:
                settings[key] = scanner[key]
        if "buffer_size" in scanner and "initial_buffer_size" not in settings:
            settings["initial_buffer_size"] = scanner["buffer_size"]
    elif scanner_obj is not None:
        raise ConfigurationError("`scanner` must be a table of settings.")

    logging_obj = raw.get("logging")
    if isinstance(logging_obj, Mapping):
        logging_section = cast(Mapping[str, object], logging_obj)
        if "level" in logging_section:
            settings["log_level"] = logging_section["level"]
        if "json" in logging_section:
            settings["json_logs"] = logging_section["json"]

    return settings


def _apply_environment_overrides(
    settings: dict[str, object], env: Mapping[str, str]
) -> dict[str, object]:
    if ENV_BUFFER_SIZE in env:
        settings["initial_buffer_size"] = _parse_int(env[ENV_BUFFER_SIZE], ENV_BUFFER_SIZE)
    if ENV_MAX_TOKEN_SIZE in env:
        settings["max_token_size"] = _parse_int(
            env[ENV_MAX_TOKEN_SIZE], ENV_MAX_TOKEN_SIZE
        )
    if ENV_TRAILING in env:
        settings["trailing"] = env[ENV_TRAILING]
    if ENV_FILE_PERMISSIONS in env:
        settings["file_permissions"] = _parse_int(
            env[ENV_FILE_PERMISSIONS], ENV_FILE_PERMISSIONS, base=8
        )
    return settings


def _build_config(settings: Mapping[str, object]) -> StreamKitConfig:
    scanner = ScannerConfig()
    scanner_values: dict[str, Any] = {}
    for key in ("initial_buffer_size", "max_token_size"):
        if key in settings:
            scanner_values[key] = _coerce_int(settings[key], key)
    if "trailing" in settings:
        scanner_values["trailing"] = _coerce_trailing(settings["trailing"])
    if scanner_values:
        scanner = replace(scanner, **scanner_values)

    permissions = settings.get("file_permissions", 0o666)
    if isinstance(permissions, str):
        permissions = _parse_int(permissions, "file_permissions", base=8)
    permissions = _coerce_int(permissions, "file_permissions")
    if not 0 <= permissions <= 0o7777:
        msg = f"file_permissions out of range: {oct(permissions)}"
        raise ConfigurationError(msg)

    log_level = settings.get("log_level")
    if log_level is not None and not isinstance(log_level, str):
        raise ConfigurationError("log_level must be a string.")

    json_logs = settings.get("json_logs", False)
    if not isinstance(json_logs, bool):
        raise ConfigurationError("json_logs must be a boolean.")

    return StreamKitConfig(
        scanner=scanner,
        file_permissions=permissions,
        log_level=log_level,
        json_logs=json_logs,
    )


def _coerce_trailing(value: object) -> TrailingPolicy:
    if isinstance(value, TrailingPolicy):
        return value
    if isinstance(value, str):
        try:
            return TrailingPolicy(value.strip().lower())
        except ValueError:
            pass
    choices = ", ".join(policy.value for policy in TrailingPolicy)
    msg = f"trailing must be one of: {choices} (got {value!r})"
    raise ConfigurationError(msg)


def _coerce_int(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{name} must be an integer (got {value!r})."
        raise ConfigurationError(msg)
    return value


def _parse_int(value: str, name: str, *, base: int = 10) -> int:
    try:
        return int(value.strip(), base)
    except ValueError as error:
        msg = f"Invalid integer in {name}: {value!r}"
        raise ConfigurationError(msg) from error

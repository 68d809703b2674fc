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

from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from streamkit.config import (
    DEFAULT_INITIAL_BUFFER_SIZE,
    DEFAULT_MAX_TOKEN_SIZE,
    ScannerConfig,
    StreamKitConfig,
    TrailingPolicy,
    load_config,
)
from streamkit.errors import ConfigurationError


def test_defaults_from_empty_mapping() -> None:
    config = load_config({}, env={})

    assert config == StreamKitConfig()
    assert config.scanner.initial_buffer_size == DEFAULT_INITIAL_BUFFER_SIZE
    assert config.scanner.max_token_size == DEFAULT_MAX_TOKEN_SIZE
    assert config.scanner.trailing is TrailingPolicy.DISCARD
    assert config.file_permissions == 0o666


def test_load_config_from_mapping_sections() -> None:
    config = load_config(
        {
            "scanner": {
                "initial_buffer_size": 128,
                "max_token_size": 1024,
                "trailing": "error",
            },
            "logging": {"level": "DEBUG", "json": True},
            "file_permissions": "600",
        },
        env={},
    )

    assert config.scanner == ScannerConfig(128, 1024, TrailingPolicy.ERROR)
    assert config.log_level == "DEBUG"
    assert config.json_logs is True
    assert config.file_permissions == 0o600


def test_buffer_size_alias() -> None:
    config = load_config({"scanner": {"buffer_size": 64}}, env={})
    assert config.scanner.initial_buffer_size == 64


def test_load_config_from_toml(tmp_path: Path) -> None:
    path = tmp_path / "streamkit.toml"
    path.write_text(
        dedent(
            """
            file_permissions = 0o640

            [scanner]
            max_token_size = 2048
            trailing = "discard"
            """
        )
    )

    config = load_config(path, env={})

    assert config.scanner.max_token_size == 2048
    assert config.file_permissions == 0o640


def test_load_config_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "streamkit.yaml"
    path.write_text(
        dedent(
            """
            scanner:
              initial_buffer_size: 16
              max_token_size: 32
            logging:
              level: WARNING
            """
        )
    )

    config = load_config(path, env={})

    assert config.scanner.initial_buffer_size == 16
    assert config.scanner.max_token_size == 32
    assert config.log_level == "WARNING"


def test_environment_overrides_file_values() -> None:
    env = {
        "STREAMKIT_BUFFER_SIZE": "256",
        "STREAMKIT_MAX_TOKEN_SIZE": "512",
        "STREAMKIT_TRAILING": "ERROR",
        "STREAMKIT_FILE_PERMISSIONS": "0644",
    }

    config = load_config({"scanner": {"max_token_size": 99999}}, env=env)

    assert config.scanner.initial_buffer_size == 256
    assert config.scanner.max_token_size == 512
    assert config.scanner.trailing is TrailingPolicy.ERROR
    assert config.file_permissions == 0o644


def test_cli_overrides_win_and_ignore_none() -> None:
    config = load_config(
        {"logging": {"level": "INFO"}},
        {"log_level": "DEBUG", "json_logs": None, "max_token_size": 8192},
        env={"STREAMKIT_MAX_TOKEN_SIZE": "100000"},
    )

    assert config.log_level == "DEBUG"
    assert config.json_logs is False
    assert config.scanner.max_token_size == 8192


def test_missing_default_file_is_allowed(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    assert load_config(None, env={}) == StreamKitConfig()


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({"scanner": {"initial_buffer_size": 0}}, "initial_buffer_size"),
        ({"scanner": {"max_token_size": -1}}, "max_token_size"),
        (
            {"scanner": {"initial_buffer_size": 64, "max_token_size": 32}},
            "exceeds",
        ),
        ({"scanner": {"trailing": "keep"}}, "trailing must be one of"),
        ({"scanner": {"max_token_size": "big"}}, "must be an integer"),
        ({"scanner": {"max_token_size": True}}, "must be an integer"),
        ({"scanner": "oops"}, "must be a table"),
        ({"file_permissions": 0o17777}, "out of range"),
        ({"file_permissions": "rw"}, "Invalid integer"),
        ({"logging": {"level": 10}}, "log_level must be a string"),
        ({"logging": {"json": "yes"}}, "json_logs must be a boolean"),
    ],
)
def test_invalid_values_raise(raw: dict[str, object], message: str) -> None:
    with pytest.raises(ConfigurationError, match=message):
        load_config(raw, env={})


def test_invalid_environment_integer() -> None:
    with pytest.raises(ConfigurationError, match="STREAMKIT_BUFFER_SIZE"):
        load_config({}, env={"STREAMKIT_BUFFER_SIZE": "lots"})


def test_missing_explicit_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "absent.toml", env={})


def test_malformed_files(tmp_path: Path) -> None:
    toml_path = tmp_path / "bad.toml"
    toml_path.write_text("scanner = [")
    yaml_path = tmp_path / "bad.yaml"
    yaml_path.write_text("- a\n- b\n")
    ini_path = tmp_path / "config.ini"
    ini_path.write_text("[scanner]")

    with pytest.raises(ConfigurationError, match="Invalid configuration file"):
        load_config(toml_path, env={})
    with pytest.raises(ConfigurationError, match="mapping at the root"):
        load_config(yaml_path, env={})
    with pytest.raises(ConfigurationError, match="Unsupported configuration format"):
        load_config(ini_path, env={})

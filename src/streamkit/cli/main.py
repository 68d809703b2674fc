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

"""Command line entry points for the ``streamkit`` executable."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from pathlib import Path

from ..config import ScannerConfig, StreamKitConfig, load_config
from ..errors import ConfigurationError, IncompleteReadError, StreamKitError
from ..logging import StructuredLogger, configure_logging, get_logger
from ..scanner import Scanner, SplitFunc, scan_bytes, scan_lines, scan_runes, scan_words
from ..streams import (
    AccessMode,
    FileStream,
    OpenFlag,
    Reader,
    Writer,
    copy,
    open_file,
    open_read,
    read_all,
    stdin,
    stdout,
    write_full,
)

EXIT_OK = 0
EXIT_STREAM_ERROR = 1
EXIT_USAGE_ERROR = 2

_SPLITS: dict[str, SplitFunc] = {
    "lines": scan_lines,
    "words": scan_words,
    "bytes": scan_bytes,
    "runes": scan_runes,
}


def main(
    argv: Sequence[str] | None = None,
    *,
    input_stream: Reader | None = None,
    output_stream: Writer | None = None,
) -> int:
    """Run the streamkit CLI.

    ``input_stream`` and ``output_stream`` replace the process's standard
    input and output, mainly for tests.
    """

    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:  # argparse exits with code 2 on errors
        code = exc.code if isinstance(exc.code, int) else EXIT_USAGE_ERROR
        return int(code)

    try:
        config = load_config(
            Path(args.config) if args.config is not None else None,
            {"log_level": args.log_level, "json_logs": args.json_logs},
        )
    except ConfigurationError as error:
        configure_logging(level=args.log_level)
        get_logger(__name__).error(
            "Invalid configuration",
            event="streamkit.cli.config_error",
            context={"error": str(error)},
        )
        return EXIT_USAGE_ERROR

    configure_logging(level=config.log_level, json_mode=config.json_logs)
    logger = get_logger(__name__, context={"command": args.command})

    source = input_stream if input_stream is not None else stdin()
    sink = output_stream if output_stream is not None else stdout()

    if args.command == "scan":
        return _run_scan(args, config, source, sink, logger)
    if args.command == "cat":
        return _run_cat(args, sink, logger)
    if args.command == "write":
        return _run_write(args, config, source, logger)

    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="streamkit",
        description="Read, write and tokenize byte streams.",
    )
    _ = parser.add_argument(
        "--log-level",
        choices=("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"),
        default=None,
        help="Override the log level emitted by the CLI.",
    )
    _ = parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Emit structured JSON logs (disable with --no-json-logs).",
    )
    _ = parser.add_argument(
        "--config",
        default=None,
        help="Path to a TOML or YAML configuration file.",
    )

    subcommands = parser.add_subparsers(dest="command", required=True)

    scan_parser = subcommands.add_parser(
        "scan",
        help="Split a file (or standard input) into tokens, one per line.",
    )
    _ = scan_parser.add_argument(
        "path",
        nargs="?",
        default="-",
        help="File to scan; '-' or omitted reads standard input.",
    )
    _ = scan_parser.add_argument(
        "--split",
        choices=tuple(_SPLITS),
        default="lines",
        help="Tokenization rule (default: lines).",
    )
    _ = scan_parser.add_argument(
        "--max-token-size",
        type=int,
        default=None,
        help="Largest token accepted before the scan fails.",
    )
    _ = scan_parser.add_argument(
        "--count",
        action="store_true",
        help="Print the number of tokens instead of the tokens.",
    )

    cat_parser = subcommands.add_parser(
        "cat",
        help="Read each file completely and copy it to standard output.",
    )
    _ = cat_parser.add_argument("paths", nargs="+", help="Files to concatenate.")

    write_parser = subcommands.add_parser(
        "write",
        help="Copy standard input into a file.",
    )
    _ = write_parser.add_argument("path", help="Destination file.")
    _ = write_parser.add_argument(
        "--append",
        action="store_true",
        help="Append to the end of the file instead of replacing it.",
    )
    _ = write_parser.add_argument(
        "--exclusive",
        action="store_true",
        help="Fail if the file already exists.",
    )
    _ = write_parser.add_argument(
        "--no-truncate",
        action="store_true",
        help="Overwrite in place without discarding existing contents.",
    )
    _ = write_parser.add_argument(
        "--sync",
        action="store_true",
        help="Make each write durable before returning.",
    )

    return parser


def _run_scan(
    args: argparse.Namespace,
    config: StreamKitConfig,
    source: Reader,
    sink: Writer,
    logger: StructuredLogger,
) -> int:
    try:
        scanner_config = _scanner_config(config.scanner, args.max_token_size)
    except ConfigurationError as error:
        logger.error(
            "Invalid scanner settings",
            event="streamkit.cli.config_error",
            context={"error": str(error)},
        )
        return EXIT_USAGE_ERROR

    try:
        reader: Reader = source if args.path == "-" else open_read(args.path)
    except StreamKitError as error:
        logger.error(
            "Unable to open input",
            event="streamkit.cli.open_error",
            context={"path": args.path, "error": str(error)},
        )
        return EXIT_STREAM_ERROR

    scanner = Scanner(reader, _SPLITS[args.split], config=scanner_config)
    count = 0
    try:
        while scanner.scan():
            count += 1
            if not args.count:
                _ = write_full(sink, scanner.token + b"\n")
        if args.count:
            _ = write_full(sink, f"{count}\n".encode())
    except StreamKitError as error:
        logger.error(
            "Unable to write output",
            event="streamkit.cli.write_error",
            context={"error": str(error)},
        )
        return EXIT_STREAM_ERROR
    finally:
        if reader is not source:
            reader.close()

    if scanner.error is not None:
        logger.error(
            "Scan failed",
            event="streamkit.cli.scan_error",
            context={
                "path": args.path,
                "tokens": count,
                "error": str(scanner.error),
            },
        )
        return EXIT_STREAM_ERROR

    logger.info(
        "Scan complete",
        event="streamkit.cli.scan_complete",
        context={"path": args.path, "split": args.split, "tokens": count},
    )
    return EXIT_OK


def _scanner_config(base: ScannerConfig, max_token_size: int | None) -> ScannerConfig:
    if max_token_size is None:
        return base
    return ScannerConfig(
        initial_buffer_size=min(base.initial_buffer_size, max(max_token_size, 1)),
        max_token_size=max_token_size,
        trailing=base.trailing,
    )


def _run_cat(
    args: argparse.Namespace, sink: Writer, logger: StructuredLogger
) -> int:
    for path in args.paths:
        try:
            with open_read(path) as stream:
                data = read_all(stream)
        except IncompleteReadError as error:
            _ = write_full(sink, error.partial)
            logger.error(
                "Read failed part way",
                event="streamkit.cli.read_error",
                context={"path": path, "bytes": len(error.partial), "error": str(error)},
            )
            return EXIT_STREAM_ERROR
        except StreamKitError as error:
            logger.error(
                "Unable to read input",
                event="streamkit.cli.open_error",
                context={"path": path, "error": str(error)},
            )
            return EXIT_STREAM_ERROR
        try:
            _ = write_full(sink, data)
        except StreamKitError as error:
            logger.error(
                "Unable to write output",
                event="streamkit.cli.write_error",
                context={"error": str(error)},
            )
            return EXIT_STREAM_ERROR
    return EXIT_OK


def _write_flags(args: argparse.Namespace) -> OpenFlag:
    flags = OpenFlag.CREATE
    if not args.no_truncate and not args.append:
        flags |= OpenFlag.TRUNCATE
    if args.append:
        flags |= OpenFlag.APPEND
    if args.exclusive:
        flags |= OpenFlag.CREATE_EXCLUSIVE
    if args.sync:
        flags |= OpenFlag.SYNC_DURABLE
    return flags


def _run_write(
    args: argparse.Namespace,
    config: StreamKitConfig,
    source: Reader,
    logger: StructuredLogger,
) -> int:
    flags = _write_flags(args)
    try:
        destination: FileStream = open_file(
            args.path,
            AccessMode.WRITE_ONLY,
            flags,
            permissions=config.file_permissions,
        )
    except StreamKitError as error:
        logger.error(
            "Unable to open output",
            event="streamkit.cli.open_error",
            context={"path": args.path, "flags": str(flags), "error": str(error)},
        )
        return EXIT_STREAM_ERROR

    with destination:
        try:
            copied = copy(destination, source)
        except (StreamKitError, OSError) as error:
            logger.error(
                "Copy failed",
                event="streamkit.cli.write_error",
                context={"path": args.path, "error": str(error)},
            )
            return EXIT_STREAM_ERROR

    logger.info(
        "Write complete",
        event="streamkit.cli.write_complete",
        context={"path": args.path, "bytes": copied},
    )
    return EXIT_OK

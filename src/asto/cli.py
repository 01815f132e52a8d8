"""CLI entry point for asto."""

import argparse
import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from pathlib import Path

from asto.config import AstoConfig, load_config
from asto.content import Content
from asto.errors import AstoError
from asto.factory import Storages
from asto.key import Key
from asto.logging_config import configure_logging
from asto.storage import Storage

logger = logging.getLogger("asto")

# Read chunk size for uploaded files: 64 KB
_CHUNK_SIZE = 64 * 1024


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="asto",
        description="asto - key-value storage over filesystem and S3 backends",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("asto.yaml"),
        help="Path to YAML configuration file (default: asto.yaml)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config, default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Log format: 'text' (human-readable) or 'json' (structured)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    exists = commands.add_parser("exists", help="Check whether a key has a value")
    exists.add_argument("key")

    ls = commands.add_parser("ls", help="List keys under a prefix ending with '/'")
    ls.add_argument("prefix", nargs="?", default="")

    cat = commands.add_parser("cat", help="Write a value to stdout")
    cat.add_argument("key")

    put = commands.add_parser("put", help="Save a local file under a key")
    put.add_argument("key")
    put.add_argument("file", type=Path)

    mv = commands.add_parser("mv", help="Move a value to another key")
    mv.add_argument("source")
    mv.add_argument("destination")

    rm = commands.add_parser("rm", help="Delete a value")
    rm.add_argument("key")

    return parser.parse_args(argv)


async def _file_chunks(path: Path) -> AsyncIterator[bytes]:
    with open(path, "rb") as fh:
        while True:
            chunk = fh.read(_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


async def dispatch(storage: Storage, args: argparse.Namespace) -> int:
    """Run one CLI command against an initialized storage.

    Returns:
        The process exit code.
    """
    if args.command == "exists":
        found = await storage.exists(Key(args.key))
        print("true" if found else "false")
        return 0 if found else 1
    if args.command == "ls":
        for key in sorted(await storage.list(Key(args.prefix))):
            print(key)
        return 0
    if args.command == "cat":
        content = await storage.value(Key(args.key))
        async for chunk in content:
            sys.stdout.buffer.write(chunk)
        sys.stdout.buffer.flush()
        return 0
    if args.command == "put":
        size = args.file.stat().st_size
        await storage.save(Key(args.key), Content(_file_chunks(args.file), size=size))
        return 0
    if args.command == "mv":
        await storage.move(Key(args.source), Key(args.destination))
        return 0
    if args.command == "rm":
        await storage.delete(Key(args.key))
        return 0
    raise ValueError(f"Unknown command: {args.command}")


async def run(config: AstoConfig, args: argparse.Namespace) -> int:
    """Open the configured storage, run the command and close it."""
    storage = Storages().new_storage(config.storage)
    await storage.init()
    try:
        return await dispatch(storage, args)
    finally:
        await storage.close()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the asto CLI.

    Exits with 0 on success, 1 on configuration or local file errors (or a
    missing key for ``exists``) and 2 on storage errors.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].
    """
    args = parse_args(argv)

    # Use a basic stderr logger for config-loading errors
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    try:
        config = load_config(args.config)
    except FileNotFoundError:
        logger.error("Config file not found: %s", args.config)
        sys.exit(1)
    except Exception as exc:
        logger.error("Failed to load config: %s", exc)
        sys.exit(1)

    if args.log_level is not None:
        config.logging.level = args.log_level
    if args.log_format is not None:
        config.logging.format = args.log_format

    configure_logging(level=config.logging.level, fmt=config.logging.format)

    try:
        code = asyncio.run(run(config, args))
    except AstoError as exc:
        logger.error("%s: %s", exc.code, exc.message)
        sys.exit(2)
    except OSError as exc:
        logger.error("Cannot access local file: %s", exc)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()

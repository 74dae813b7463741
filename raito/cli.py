#!/usr/bin/env python3
"""
Raito Command-Line Client

Run a single command, or start an interactive session when no command is
given.

Usage:
    raito get user:1                              # localhost:9180
    raito --url raito://cache:9180 set user:1 alice
    raito --port 7180 --password secret set session:abc data 60000
    raito clear user:1
    raito                                         # interactive session

Environment Variables:
    RAITO_HOST              - Default server host
    RAITO_PORT              - Default server port
    RAITO_CONNECT_TIMEOUT   - Seconds to wait for the connection
    RAITO_REQUEST_TIMEOUT   - Seconds to wait for each response
    RAITO_DEBUG             - Enable debug logging (true/false)
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from typing import List, Optional

from .client import ConnectionState, Raito
from .config.settings import settings
from .exceptions import RaitoError
from .options import ConnectionOptions, resolve_options

logger = logging.getLogger(__name__)

HELP_TEXT = """
Raito Commands:
---------------
  GET <key>                 Retrieve the record stored under a key
  SET <key> <value> [ttl]   Store a value (optional TTL in milliseconds)
  CLEAR <key>               Remove a key

Client Commands:
----------------
  help                      Show this help message
  status                    Show connection status
  exit                      Exit the client
"""


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="raito",
        description="Command-line client for the Raito cache server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--url",
        type=str,
        default=None,
        help="Connection string, e.g. raito://localhost:9180?ttl=5000",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.HOST,
        help="Server host (ignored with --url)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=settings.PORT,
        help="Server port (ignored with --url)",
    )

    parser.add_argument(
        "--password",
        type=str,
        default=None,
        help="Password for the authentication handshake",
    )

    parser.add_argument(
        "--ttl",
        type=int,
        default=None,
        help="Default TTL in milliseconds for SET",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=settings.REQUEST_TIMEOUT,
        help="Connect and request timeout in seconds (0 = wait forever)",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    parser.add_argument(
        "command",
        nargs="*",
        help="Command to run, e.g. 'get KEY'; omit for an interactive session",
    )

    return parser.parse_args(argv)


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr),
        ]
    )


def build_options(args: argparse.Namespace) -> ConnectionOptions:
    """
    Build client options from parsed arguments.

    Raises:
        RaitoConnectionError: If --url is not a valid connection string
    """
    if args.url:
        options = resolve_options(args.url)
    else:
        options = ConnectionOptions(host=args.host, port=args.port)

    changes = {
        "password": args.password,
        "connect_timeout": args.timeout,
        "request_timeout": args.timeout,
    }
    if args.ttl is not None:
        changes["ttl"] = args.ttl
    return dataclasses.replace(options, **changes)


def format_value(value) -> str:
    """Render a cached value for display."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


async def execute(client: Raito, tokens: List[str]) -> str:
    """
    Run one command against the server.

    Args:
        client: A connected (or connecting) Raito client
        tokens: The command and its arguments, e.g. ["set", "k", "v"]

    Returns:
        The text to display

    Raises:
        ValueError: For unknown commands or wrong arguments
        RaitoError: If the operation fails
    """
    if not tokens:
        raise ValueError("empty command")

    name, args = tokens[0].upper(), tokens[1:]

    if name == "GET" and len(args) == 1:
        record = await client.get(args[0])
        if record is None:
            return "(nil)"
        return format_value(record.data)

    if name == "SET" and len(args) in (2, 3):
        ttl = None
        if len(args) == 3:
            try:
                ttl = int(args[2])
            except ValueError:
                raise ValueError(f"invalid ttl: {args[2]}") from None
        await client.set(args[0], args[1], ttl)
        return "OK"

    if name == "CLEAR" and len(args) == 1:
        await client.clear(args[0])
        return "OK"

    raise ValueError(f"invalid command: {' '.join(tokens)}")


async def run_once(client: Raito, tokens: List[str]) -> int:
    """Run a single command and print its result; return the exit code."""
    try:
        print(await execute(client, tokens))
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except RaitoError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    return 0


async def run_interactive(client: Raito) -> int:
    """Read commands from stdin until exit or EOF."""
    loop = asyncio.get_running_loop()

    print("Raito Client")
    print("============")
    print(f"Connecting to {client.url}...")

    try:
        await client.ensure_connected()
    except RaitoError as e:
        print(f"Failed to connect: {e}")
        return 1

    print("Connected! Type 'help' for commands.\n")

    while True:
        try:
            line = await loop.run_in_executor(None, input, ">>> ")
        except EOFError:
            print("\nGoodbye!")
            return 0

        line = line.strip()
        if not line:
            continue

        lower_cmd = line.lower()

        if lower_cmd == "help":
            print(HELP_TEXT)
            continue

        if lower_cmd in ("exit", "quit"):
            print("Goodbye!")
            return 0

        if lower_cmd == "status":
            print(f"Status: {client.state.value}")
            print(f"Server: {client.url}")
            continue

        try:
            print(await execute(client, line.split()))
        except (ValueError, RaitoError) as e:
            print(f"ERROR: {e}")

        if client.state is ConnectionState.CLOSED:
            print("Connection closed by server. Goodbye!")
            return 1


async def run(args: argparse.Namespace) -> int:
    """Connect, dispatch to one-shot or interactive mode, then shut down."""
    client = Raito(build_options(args))
    try:
        if args.command:
            return await run_once(client, args.command)
        return await run_interactive(client)
    finally:
        await client.shutdown()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command-line client."""
    args = parse_args(argv)
    setup_logging(debug=args.debug)

    try:
        return asyncio.run(run(args))
    except RaitoError as e:
        logger.error(f"{e}")
        return 1
    except KeyboardInterrupt:
        print("\n\nInterrupted. Goodbye!")
        return 130


if __name__ == "__main__":
    sys.exit(main())

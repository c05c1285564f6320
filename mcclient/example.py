#!/usr/bin/env python3
"""
mcclient Example Program

Stores a few values on a memcached server, then fetches them back through
pipelined get commands, printing each result as its callback fires.

Usage:
    python -m mcclient.example                    # Default settings (127.0.0.1:11211)
    python -m mcclient.example --port 11212       # Custom port
    python -m mcclient.example --host 10.0.0.5    # Custom host
    python -m mcclient.example --debug            # Enable debug logging

Environment Variables:
    MEMCACHE_HOST       - Server address
    MEMCACHE_PORT       - Server port
    MEMCACHE_DEBUG      - Enable debug mode (true/false)
"""

import argparse
import asyncio
import logging
import sys

from .config.settings import settings
from .errors import ConnectionFailedError
from .network.transport import MemcacheConnection


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="mcclient: pipelined memcached client example",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.HOST,
        help="Server address to connect to",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=settings.PORT,
        help="Server port",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    return parser.parse_args()


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


async def run_example(host: str, port: int) -> None:
    """Issue the demo commands, then wait for the last reply."""
    connection = MemcacheConnection(host=host, port=port, reconnect_delay=0)
    cache = connection.client
    done = asyncio.get_running_loop().create_future()

    # Commands issued before the connection is up are queued and sent in order
    cache.set("a", "hello")
    cache.set("b", "hi")
    cache.set("c", "how are you?")
    cache.set("d", "")

    cache.get("a", callback=lambda values: print(values[0]))
    cache.get_hash("a", "b", "c", "d", callback=print)
    cache.get("a", "b", "c", "d", callback=print)
    cache.get("a", "z", "b", "y", "d", callback=print)

    cache.get("missing", callback=lambda values: print("missing =", values[0]))
    cache.set("missing", "abc", callback=lambda ok: print("stored"))
    cache.get("missing", callback=lambda values: print("missing =", values[0]))
    cache.delete("missing", callback=lambda ok: print("deleted" if ok else "not found"))
    cache.get("missing", callback=lambda values: done.set_result(values[0]))

    await connection.open()
    try:
        print("missing =", await done)
    finally:
        await connection.close()


def main() -> None:
    """Main entry point for the example program."""
    args = parse_args()

    setup_logging(debug=args.debug)
    logger = logging.getLogger(__name__)

    logger.info(f"Connecting to {args.host}:{args.port}")

    try:
        asyncio.run(run_example(args.host, args.port))
    except ConnectionFailedError as e:
        logger.error(f"{e} at {args.host}:{args.port}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")


if __name__ == "__main__":
    main()

"""Newline-delimited JSON-RPC over stdin/stdout.

stdout carries protocol messages only; all logging goes to stderr.
"""

import asyncio
import json
import logging
import sys
import threading
from typing import TextIO

from ..policy_engine import PolicyEngine
from .transport import handle_raw_message

logger = logging.getLogger(__name__)


def _start_reader(instream: TextIO, loop: asyncio.AbstractEventLoop) -> asyncio.Queue:
    """Read lines on a daemon thread so a blocked read never holds up exit.

    The queue receives each line, then None at end of input.
    """
    queue: asyncio.Queue = asyncio.Queue()

    def read_lines() -> None:
        for line in instream:
            loop.call_soon_threadsafe(queue.put_nowait, line)
        loop.call_soon_threadsafe(queue.put_nowait, None)

    threading.Thread(target=read_lines, name="stdio-reader", daemon=True).start()
    return queue


async def serve_stdio(
    engine: PolicyEngine,
    instream: TextIO | None = None,
    outstream: TextIO | None = None,
) -> None:
    """Serve requests until the input stream closes."""
    instream = instream or sys.stdin
    outstream = outstream or sys.stdout
    queue = _start_reader(instream, asyncio.get_running_loop())
    logger.info("Policy server running on stdio")

    while True:
        line = await queue.get()
        if line is None:
            break
        line = line.strip()
        if not line:
            continue

        response = await handle_raw_message(line, engine)
        if response is None:
            continue
        outstream.write(json.dumps(response, ensure_ascii=False) + "\n")
        outstream.flush()

    logger.info("stdin closed, stopping stdio transport")

"""Helpers for child processes whose output is streamed."""

import asyncio
import logging

logger = logging.getLogger("lifecycle.process")


async def kill_and_reap(process: asyncio.subprocess.Process, name: str) -> None:
    """Kill a still running child and wait for it to exit.

    Args:
        process: Child started with asyncio.create_subprocess_exec
        name: Command name for logs
    """
    if process.returncode is not None:
        return
    logger.warning(f"Killing {name} (pid {process.pid})")
    try:
        process.kill()
    except ProcessLookupError:
        # Exited between the check and the kill
        pass
    await process.wait()


def tail(data: bytes, limit: int = 2000) -> str:
    """Decode the last ``limit`` characters of captured output."""
    return data.decode(errors="replace").strip()[-limit:]

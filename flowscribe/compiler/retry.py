"""Retry wrapper generator: the bounded-retry helper declared in every script."""

from __future__ import annotations

RETRY_HELPER = "retry_action"


def retry_helper_source(retries: int = 3, backoff_ms: int = 1000) -> str:
    """
    Source of ``retry_action``.

    The helper runs an async callable up to ``retries`` times with a fixed
    ``backoff_ms`` pause between attempts and re-raises the last error. It is
    declared for script authors and runtimes to wrap fragile actions; emitted
    steps do not call it.
    """
    if retries < 1:
        raise ValueError(f"retries must be at least 1, got {retries}")
    if backoff_ms < 0:
        raise ValueError(f"backoff_ms must not be negative, got {backoff_ms}")
    return (
        f"async def retry_action(action, retries={retries}, backoff_ms={backoff_ms}):\n"
        '    """Run ``action`` up to ``retries`` times, re-raising the last error."""\n'
        "    for attempt in range(retries):\n"
        "        try:\n"
        "            await action()\n"
        "            return\n"
        "        except Exception:\n"
        "            if attempt == retries - 1:\n"
        "                raise\n"
        "            await asyncio.sleep(backoff_ms / 1000)\n"
    )

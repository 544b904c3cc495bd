"""Tab/context switch resolver emission."""

from __future__ import annotations

from flowscribe.compiler.codegen import comment_text, quote
from flowscribe.compiler.types import (
    CompilerOptions,
    Interaction,
    StatementBlock,
    TabNotFoundPolicy,
)

TAB_HELPER = "wait_for_tab"

_TAB_HELPER_SOURCE = '''\
class TabNotFoundError(LookupError):
    """No open tab matched a recorded tab switch."""


async def wait_for_tab(context, matches, description, timeout_ms=5000, poll_ms=250):
    """Poll the open tabs, in creation order, until one satisfies ``matches``."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_ms / 1000
    while True:
        for candidate in context.pages:
            if await matches(candidate):
                return candidate
        if loop.time() >= deadline:
            raise TabNotFoundError(f"No open tab {description} after {timeout_ms}ms")
        await asyncio.sleep(poll_ms / 1000)
'''


def tab_helper_source() -> str:
    return _TAB_HELPER_SOURCE


def describe_switch(interaction: Interaction) -> str:
    if interaction.tab_index is not None:
        return f"at index {interaction.tab_index}"
    if interaction.title_substring:
        return f"with title containing: {interaction.title_substring}"
    return f"with URL containing: {interaction.url_substring}"


def _match_condition(interaction: Interaction) -> str:
    if interaction.tab_index is not None:
        return f"context.pages.index(candidate) == {interaction.tab_index}"
    if interaction.title_substring:
        return f"{quote(interaction.title_substring)} in await candidate.title()"
    return f"{quote(interaction.url_substring or '')} in candidate.url"


class TabSwitchResolver:
    """
    Emits the statements that promote another open tab to the active page.

    The set of tabs is read from the ``context`` argument of the generated
    ``run_flow``. Nothing is resolved at compile time: an unmatched title is
    only observable when the script runs.

    With ``TabNotFoundPolicy.CONTINUE`` the emitted loop scans once and, when
    nothing matches, leaves ``page`` as it was. With ``RAISE`` the scan polls
    for ``tab_scan_timeout_ms`` and then raises ``TabNotFoundError``. Index
    switches go through the same scan under ``RAISE``, so a missing index is
    reported the same way.
    """

    def __init__(self, options: CompilerOptions | None = None) -> None:
        self._options = options or CompilerOptions()

    def emit(self, interaction: Interaction) -> StatementBlock:
        block = StatementBlock(
            comments=[
                f"Step {interaction.step_index}: Switch to tab "
                f"{comment_text(describe_switch(interaction))}"
            ]
        )
        raise_on_miss = self._options.tab_not_found == TabNotFoundPolicy.RAISE

        if interaction.tab_index is not None and not raise_on_miss:
            block.statements = [
                f"page = context.pages[{interaction.tab_index}]",
                "await page.bring_to_front()",
            ]
            return block

        condition = _match_condition(interaction)

        if raise_on_miss:
            matcher = f"_tab_matches_{interaction.step_index}"
            block.statements = [
                f"async def {matcher}(candidate):",
                f"    return {condition}",
                "",
                f"page = await wait_for_tab(context, {matcher}, "
                f"{quote(describe_switch(interaction))}, "
                f"timeout_ms={self._options.tab_scan_timeout_ms})",
                "await page.bring_to_front()",
            ]
            block.helpers.add(TAB_HELPER)
            return block

        block.statements = [
            "for candidate in context.pages:",
            f"    if {condition}:",
            "        page = candidate",
            "        await page.bring_to_front()",
            "        break",
        ]
        return block

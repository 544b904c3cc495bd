"""Step emitter: one normalized interaction → one block of Playwright statements."""

from __future__ import annotations

from flowscribe.compiler.codegen import comment_text, quote, quote_list
from flowscribe.compiler.selectors import (
    RESOLVE_HELPER,
    describe_candidates,
    require_candidates,
    target_expression,
)
from flowscribe.compiler.tabs import TabSwitchResolver
from flowscribe.compiler.types import (
    TARGETED_KINDS,
    CompilerOptions,
    FirstOnly,
    Interaction,
    InteractionKind,
    StatementBlock,
)


def _acts_on_target(interaction: Interaction) -> bool:
    if interaction.kind in TARGETED_KINDS:
        return True
    if interaction.kind == InteractionKind.WAIT:
        return interaction.duration_ms is None
    if interaction.kind == InteractionKind.SCROLL:
        return interaction.delta is None
    return False


def describe(interaction: Interaction) -> str:
    """Human-readable intent for the ``# Step N:`` comment."""
    kind = interaction.kind
    primary = interaction.primary_selector

    if kind == InteractionKind.NAVIGATE:
        return f"Navigate to {interaction.url}"
    if kind == InteractionKind.WAIT:
        if interaction.duration_ms is not None:
            return f"Wait for {interaction.duration_ms}ms"
        return f"Wait for {primary} to be {interaction.wait_state or 'visible'}"
    if kind == InteractionKind.CLICK:
        return f"Click on {primary}"
    if kind == InteractionKind.TYPE:
        return f'Type "{interaction.value}" into {primary}'
    if kind == InteractionKind.PRESS_KEY:
        return f"Press {interaction.value} in {primary}"
    if kind == InteractionKind.SCROLL:
        if interaction.delta is not None:
            dx, dy = interaction.delta
            return f"Scroll by ({dx}, {dy})"
        return f"Scroll {primary} into view"
    if kind == InteractionKind.SELECT:
        return f'Select "{", ".join(interaction.options or [])}" in {primary}'
    if kind == InteractionKind.GO_BACK:
        return "Navigate back to previous page"
    if kind == InteractionKind.GO_FORWARD:
        return "Navigate forward in browser history"
    if kind == InteractionKind.RELOAD:
        return "Reload the current page"
    if kind == InteractionKind.SCREENSHOT:
        return f"Take screenshot: {interaction.name}"
    if kind == InteractionKind.NEW_TAB:
        return f"Open new tab with URL: {interaction.url}" if interaction.url else "Open new tab"
    if kind == InteractionKind.CLOSE_TAB:
        if interaction.tab_index is not None:
            return f"Close tab at index {interaction.tab_index}"
        return "Close current tab"
    return kind.value


class StepEmitter:
    """
    Maps each normalized interaction to executable statements plus, where
    the kind has one, an inline post-condition assertion.

    Targeted steps are located through the configured selector resolution
    policy. Under the default ``FirstOnly`` policy only the first candidate
    is executed; the full list always appears in a ``# Candidates:`` comment.
    Emission does not fail for a Flow that passed normalization.
    """

    def __init__(
        self,
        options: CompilerOptions | None = None,
        tab_resolver: TabSwitchResolver | None = None,
    ) -> None:
        self._options = options or CompilerOptions()
        self._tabs = tab_resolver or TabSwitchResolver(self._options)

    def emit(self, interaction: Interaction) -> StatementBlock:
        if interaction.kind == InteractionKind.SWITCH_TAB:
            return self._tabs.emit(interaction)

        candidates = require_candidates(interaction)
        block = StatementBlock(
            comments=[f"Step {interaction.step_index}: {comment_text(describe(interaction))}"]
        )
        if candidates and _acts_on_target(interaction):
            block.comments.append(
                f"Candidates: {comment_text(describe_candidates(candidates))}"
            )
            policy = self._options.selector_policy
            block.statements.append(f"target = {target_expression(candidates, policy)}")
            if not isinstance(policy, FirstOnly):
                block.helpers.add(RESOLVE_HELPER)

        handler = getattr(self, f"_emit_{interaction.kind.value}")
        handler(interaction, block)
        return block

    # ------------------------------------------------------------------
    # Per-kind handlers
    # ------------------------------------------------------------------

    def _emit_navigate(self, interaction: Interaction, block: StatementBlock) -> None:
        url = quote(interaction.url or "")
        block.statements.append(f"await page.goto({url})")
        block.assertions.append(f"await expect(page).to_have_url({url})")

    def _emit_wait(self, interaction: Interaction, block: StatementBlock) -> None:
        if interaction.duration_ms is not None:
            block.statements.append(f"await page.wait_for_timeout({interaction.duration_ms})")
        else:
            state = quote(interaction.wait_state or "visible")
            block.statements.append(f"await target.wait_for(state={state})")

    def _emit_click(self, interaction: Interaction, block: StatementBlock) -> None:
        block.statements.append("await target.click()")
        if self._options.settle_after_click:
            block.statements.append("await page.wait_for_load_state('networkidle')")

    def _emit_type(self, interaction: Interaction, block: StatementBlock) -> None:
        value = quote(interaction.value or "")
        block.statements.append(f"await target.press_sequentially({value})")
        block.assertions.append(f"await expect(target).to_have_value({value})")

    def _emit_press_key(self, interaction: Interaction, block: StatementBlock) -> None:
        block.statements.append(f"await target.press({quote(interaction.value or '')})")

    def _emit_scroll(self, interaction: Interaction, block: StatementBlock) -> None:
        if interaction.delta is None:
            block.statements.append("await target.scroll_into_view_if_needed()")
            return
        dx, dy = interaction.delta
        block.statements.append("await page.mouse.move(0, 0)")
        block.statements.append(f"await page.mouse.wheel({dx}, {dy})")

    def _emit_select(self, interaction: Interaction, block: StatementBlock) -> None:
        block.statements.append(
            f"await target.select_option({quote_list(interaction.options or [])})"
        )

    def _emit_go_back(self, interaction: Interaction, block: StatementBlock) -> None:
        block.statements.append(
            f"await page.go_back(wait_until={quote(interaction.wait_until or 'load')})"
        )

    def _emit_go_forward(self, interaction: Interaction, block: StatementBlock) -> None:
        block.statements.append(
            f"await page.go_forward(wait_until={quote(interaction.wait_until or 'load')})"
        )

    def _emit_reload(self, interaction: Interaction, block: StatementBlock) -> None:
        block.statements.append(
            f"await page.reload(wait_until={quote(interaction.wait_until or 'load')})"
        )

    def _emit_screenshot(self, interaction: Interaction, block: StatementBlock) -> None:
        path = quote(f"screenshots/{interaction.name}.png")
        block.statements.append(
            f"await page.screenshot(path={path}, full_page={interaction.full_page})"
        )

    def _emit_new_tab(self, interaction: Interaction, block: StatementBlock) -> None:
        block.statements.append("page = await context.new_page()")
        if interaction.url:
            block.statements.append(f"await page.goto({quote(interaction.url)})")

    def _emit_close_tab(self, interaction: Interaction, block: StatementBlock) -> None:
        if interaction.tab_index is not None:
            block.statements.append(f"await context.pages[{interaction.tab_index}].close()")
            return
        block.statements.append("await page.close()")
        block.statements.append("page = context.pages[-1]")

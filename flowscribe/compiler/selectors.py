"""Candidate selector carrier and resolution-policy emission."""

from __future__ import annotations

from flowscribe.compiler.codegen import quote, quote_list
from flowscribe.compiler.errors import MissingTargetError
from flowscribe.compiler.types import (
    TARGETED_KINDS,
    FirstOnly,
    Interaction,
    SelectorResolutionPolicy,
    TryAllConcurrentFirstWin,
    TryInOrderWithTimeout,
)

RESOLVE_HELPER = "resolve_locator"

_RESOLVE_IN_ORDER_SOURCE = '''\
async def resolve_locator(page, candidates, per_attempt_ms=5000):
    """Try each candidate selector in order until one becomes visible."""
    errors = []
    for selector in candidates:
        locator = page.locator(selector)
        try:
            await locator.wait_for(state="visible", timeout=per_attempt_ms)
            return locator
        except Exception as e:
            errors.append(f"{selector}: {e}")
    raise LookupError(
        f"resolve_locator exhausted all candidates. Errors: {errors}"
    )
'''

_RESOLVE_CONCURRENT_SOURCE = '''\
async def resolve_locator(page, candidates, timeout_ms=5000):
    """Race every candidate selector; the first to become visible wins."""

    async def probe(selector):
        locator = page.locator(selector)
        await locator.wait_for(state="visible", timeout=timeout_ms)
        return locator

    tasks = [asyncio.ensure_future(probe(selector)) for selector in candidates]
    errors = []
    try:
        for finished in asyncio.as_completed(tasks):
            try:
                return await finished
            except Exception as e:
                errors.append(str(e))
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    raise LookupError(
        f"resolve_locator exhausted all candidates. Errors: {errors}"
    )
'''


def require_candidates(interaction: Interaction) -> list[str]:
    """
    Return the candidate list of a targeted interaction, unchanged.

    Raises ``MissingTargetError`` when a click/type/press_key/select step
    carries no candidates. Non-targeted kinds may carry none.
    """
    candidates = interaction.target_selectors or []
    if interaction.kind in TARGETED_KINDS and not candidates:
        raise MissingTargetError(interaction.step_index, interaction.kind.value)
    return list(candidates)


def describe_candidates(candidates: list[str]) -> str:
    return ", ".join(candidates)


def resolver_source(policy: SelectorResolutionPolicy) -> str | None:
    """Module-level helper the policy needs, or None for ``FirstOnly``."""
    if isinstance(policy, TryInOrderWithTimeout):
        return _RESOLVE_IN_ORDER_SOURCE
    if isinstance(policy, TryAllConcurrentFirstWin):
        return _RESOLVE_CONCURRENT_SOURCE
    return None


def target_expression(candidates: list[str], policy: SelectorResolutionPolicy) -> str:
    """Python expression that evaluates to the Locator a step acts on."""
    if isinstance(policy, TryInOrderWithTimeout):
        return (
            f"await resolve_locator(page, {quote_list(candidates)}, "
            f"per_attempt_ms={policy.per_attempt_ms})"
        )
    if isinstance(policy, TryAllConcurrentFirstWin):
        return (
            f"await resolve_locator(page, {quote_list(candidates)}, "
            f"timeout_ms={policy.timeout_ms})"
        )
    if not isinstance(policy, FirstOnly):
        raise TypeError(f"Unknown selector resolution policy: {policy!r}")
    return f"page.locator({quote(candidates[0])})"

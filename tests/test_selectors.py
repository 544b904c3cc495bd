"""Unit tests for the candidate selector carrier and resolution policies."""

from __future__ import annotations

import ast

import pytest

from flowscribe.compiler.errors import MissingTargetError
from flowscribe.compiler.selectors import (
    describe_candidates,
    require_candidates,
    resolver_source,
    target_expression,
)
from flowscribe.compiler.types import (
    FirstOnly,
    Interaction,
    InteractionKind,
    TryAllConcurrentFirstWin,
    TryInOrderWithTimeout,
)


def make_interaction(kind=InteractionKind.CLICK, selectors=None, index=1) -> Interaction:
    return Interaction(step_index=index, kind=kind, target_selectors=selectors, value="x")


class TestRequireCandidates:
    @pytest.mark.parametrize(
        "kind",
        [InteractionKind.CLICK, InteractionKind.TYPE, InteractionKind.PRESS_KEY, InteractionKind.SELECT],
    )
    def test_targeted_kinds_need_candidates(self, kind):
        with pytest.raises(MissingTargetError) as exc_info:
            require_candidates(make_interaction(kind=kind, selectors=[], index=4))
        assert exc_info.value.step_index == 4
        assert exc_info.value.kind == kind.value

    def test_absent_candidates_raise_for_click(self):
        with pytest.raises(MissingTargetError):
            require_candidates(make_interaction(selectors=None))

    def test_untargeted_kind_may_have_none(self):
        interaction = Interaction(step_index=1, kind=InteractionKind.WAIT, duration_ms=100)
        assert require_candidates(interaction) == []

    def test_order_is_preserved(self):
        assert require_candidates(make_interaction(selectors=["b", "a", "c"])) == ["b", "a", "c"]

    def test_returns_a_copy(self):
        selectors = ["a", "b"]
        result = require_candidates(make_interaction(selectors=selectors))
        result.append("c")
        assert selectors == ["a", "b"]

    def test_describe_lists_in_order(self):
        assert describe_candidates(["a", "b", "c"]) == "a, b, c"


class TestTargetExpression:
    def test_first_only_uses_first_candidate(self):
        expr = target_expression(["a", "b", "c"], FirstOnly())
        assert expr == "page.locator('a')"

    def test_first_only_escapes_quotes(self):
        expr = target_expression(["input[name='q']"], FirstOnly())
        assert expr == "page.locator('input[name=\\'q\\']')"

    def test_in_order_passes_all_candidates(self):
        expr = target_expression(["a", "b"], TryInOrderWithTimeout(per_attempt_ms=1500))
        assert expr == "await resolve_locator(page, ['a', 'b'], per_attempt_ms=1500)"

    def test_concurrent_passes_all_candidates(self):
        expr = target_expression(["a", "b"], TryAllConcurrentFirstWin(timeout_ms=3000))
        assert expr == "await resolve_locator(page, ['a', 'b'], timeout_ms=3000)"

    def test_unknown_policy_raises(self):
        with pytest.raises(TypeError):
            target_expression(["a"], object())


class TestResolverSource:
    def test_first_only_needs_no_helper(self):
        assert resolver_source(FirstOnly()) is None

    @pytest.mark.parametrize(
        "policy", [TryInOrderWithTimeout(), TryAllConcurrentFirstWin()]
    )
    def test_helper_is_valid_python(self, policy):
        source = resolver_source(policy)
        tree = ast.parse(source)
        names = [n.name for n in tree.body if isinstance(n, ast.AsyncFunctionDef)]
        assert names == ["resolve_locator"]

    def test_policy_tags(self):
        assert FirstOnly().tag == "first_only"
        assert TryInOrderWithTimeout().tag == "try_in_order"
        assert TryAllConcurrentFirstWin().tag == "try_all_concurrent"

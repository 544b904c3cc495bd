"""Unit tests for FlowCompiler (pure, no browser required)."""

from __future__ import annotations

import ast
import datetime
import os
import tempfile

import pytest

from flowscribe.compiler.compiler import FlowCompiler, compile_flow
from flowscribe.compiler.errors import EmptyFlowError, MissingTargetError
from flowscribe.compiler.types import (
    CompilerOptions,
    Flow,
    Interaction,
    InteractionKind,
    TabNotFoundPolicy,
    TryAllConcurrentFirstWin,
)

BASE_URL = "https://www.google.com"


def make_wait(ms, index) -> Interaction:
    return Interaction(step_index=index, kind=InteractionKind.WAIT, duration_ms=ms)


def make_flow(interactions=None, name="go back", url=BASE_URL) -> Flow:
    return Flow(
        name=name,
        interactions=interactions
        if interactions is not None
        else [make_wait(2000, 1), make_wait(1000, 2)],
        recorded_at="2025-07-20T00:32:11.469Z",
        initial_url=url,
    )


def body_of(source: str, function_name: str = "run_flow") -> list[str]:
    """Non-blank, non-comment statement lines of the generated run function."""
    start = source.index(f"async def {function_name}(context):")
    end = source.index("\n\n\n", start)
    return [
        line.strip()
        for line in source[start:end].splitlines()[1:]
        if line.strip() and not line.strip().startswith("#")
    ]


class TestFlowCompiler:
    def setup_method(self):
        self.compiler = FlowCompiler()

    # ------------------------------------------------------------------ purity

    def test_same_flow_same_source(self):
        a = self.compiler.compile(make_flow())
        b = self.compiler.compile(make_flow())
        assert a.source == b.source

    def test_fresh_compiler_same_source(self):
        assert FlowCompiler().compile(make_flow()).source == compile_flow(make_flow()).source

    def test_source_is_valid_python(self):
        script = self.compiler.compile(make_flow())
        ast.parse(script.source)

    def test_compile_does_not_touch_filesystem(self):
        tmpdir = tempfile.mkdtemp()
        out = os.path.join(tmpdir, "never")
        FlowCompiler(output_dir=out).compile(make_flow())
        assert not os.path.exists(out)

    # ------------------------------------------------------------------ errors

    def test_empty_flow_never_emits(self):
        with pytest.raises(EmptyFlowError):
            self.compiler.compile(make_flow(interactions=[]))

    def test_missing_target_aborts(self):
        flow = make_flow(
            interactions=[Interaction(step_index=1, kind=InteractionKind.CLICK, target_selectors=[])]
        )
        with pytest.raises(MissingTargetError):
            self.compiler.compile(flow)

    # ------------------------------------------------------------------ structure

    def test_go_back_scenario_structure(self):
        script = self.compiler.compile(make_flow())
        assert body_of(script.source) == [
            "context.set_default_timeout(TIMEOUT_MS)",
            "page = await context.new_page()",
            f"await page.goto('{BASE_URL}')",
            "await page.wait_for_timeout(2000)",
            "await page.wait_for_timeout(1000)",
            'await expect(page).to_have_url(re.compile(r"."))',
            "return page",
        ]

    def test_module_sections_in_order(self):
        src = self.compiler.compile(make_flow()).source
        order = [
            "from playwright.async_api import",
            "SUITE = 'intelligent-automation'",
            "async def retry_action(",
            "async def run_flow(context):",
            "class TestIntelligentAutomation:",
            "async def test_go_back(self):",
            'if __name__ == "__main__":',
        ]
        positions = [src.index(marker) for marker in order]
        assert positions == sorted(positions)

    def test_timeout_directive(self):
        src = self.compiler.compile(make_flow()).source
        assert "TIMEOUT_MS = 60000" in src
        assert "timeout=TIMEOUT_MS / 1000" in src

    def test_retry_helper_declared_but_not_wired(self):
        src = self.compiler.compile(make_flow()).source
        assert "async def retry_action(action, retries=3, backoff_ms=1000):" in src
        assert src.count("retry_action(") == 1

    def test_test_case_named_after_flow(self):
        script = self.compiler.compile(make_flow(name="Go to Google and search"))
        assert script.test_name == "test_go_to_google_and_search"
        assert "TEST_NAME = 'Go to Google and search'" in script.source

    def test_duplicate_navigation_emitted_twice(self):
        flow = make_flow(
            interactions=[Interaction(step_index=1, kind=InteractionKind.NAVIGATE, url=BASE_URL)]
        )
        src = self.compiler.compile(flow).source
        assert src.count(f"await page.goto('{BASE_URL}')") == 2
        # only the explicit step is numbered and asserted
        assert src.count(f"to_have_url('{BASE_URL}')") == 1
        assert "# Step 1: Navigate to" in src

    def test_flow_without_initial_url(self):
        src = self.compiler.compile(make_flow(url="")).source
        assert "# Navigate to" not in src

    def test_terminal_assertion_is_last(self):
        flow = make_flow(
            interactions=[
                Interaction(step_index=1, kind=InteractionKind.NAVIGATE, url="https://example.com"),
                Interaction(
                    step_index=2,
                    kind=InteractionKind.TYPE,
                    target_selectors=["#q"],
                    value="y",
                ),
            ]
        )
        body = body_of(self.compiler.compile(flow).source)
        assert body[-2] == 'await expect(page).to_have_url(re.compile(r"."))'
        assert body[-1] == "return page"

    def test_step_count(self):
        assert self.compiler.compile(make_flow()).step_count == 2

    def test_quotes_in_flow_name_are_safe(self):
        script = self.compiler.compile(make_flow(name='say """hi""" it\'s \\ me'))
        ast.parse(script.source)

    # ------------------------------------------------------------------ tab switching

    def test_unresolvable_tab_title_compiles(self):
        flow = make_flow(
            name="switch tabs to CAQH ProView - Sign In",
            interactions=[
                Interaction(
                    step_index=1,
                    kind=InteractionKind.SWITCH_TAB,
                    title_substring="CAQH ProView - Sign In",
                )
            ],
        )
        script = self.compiler.compile(flow)
        ast.parse(script.source)
        assert "'CAQH ProView - Sign In' in await candidate.title()" in script.source
        assert "TabNotFoundError" not in script.source

    def test_raise_policy_declares_tab_helper(self):
        compiler = FlowCompiler(CompilerOptions(tab_not_found=TabNotFoundPolicy.RAISE))
        flow = make_flow(
            interactions=[
                Interaction(step_index=1, kind=InteractionKind.SWITCH_TAB, title_substring="Sign In")
            ]
        )
        script = compiler.compile(flow)
        ast.parse(script.source)
        assert "class TabNotFoundError(LookupError):" in script.source
        assert script.helpers == ("wait_for_tab",)

    # ------------------------------------------------------------------ selector policies

    def test_concurrent_policy_declares_resolver_once(self):
        compiler = FlowCompiler(CompilerOptions(selector_policy=TryAllConcurrentFirstWin()))
        flow = make_flow(
            interactions=[
                Interaction(step_index=1, kind=InteractionKind.CLICK, target_selectors=["a", "b"]),
                Interaction(step_index=2, kind=InteractionKind.CLICK, target_selectors=["c"]),
            ]
        )
        script = compiler.compile(flow)
        ast.parse(script.source)
        assert script.source.count("async def resolve_locator(") == 1
        assert script.helpers == ("resolve_locator",)

    def test_first_only_declares_no_resolver(self):
        flow = make_flow(
            interactions=[Interaction(step_index=1, kind=InteractionKind.CLICK, target_selectors=["a", "b"])]
        )
        script = self.compiler.compile(flow)
        assert "resolve_locator" not in script.source
        assert script.helpers == ()

    # ------------------------------------------------------------------ options

    def test_custom_suite_name(self):
        compiler = FlowCompiler(CompilerOptions(suite_name="checkout smoke"))
        src = compiler.compile(make_flow()).source
        assert "class TestCheckoutSmoke:" in src
        assert "SUITE = 'checkout smoke'" in src

    def test_null_bytes_in_payloads_are_safe(self):
        flow = make_flow(
            name="nul\x00name",
            interactions=[
                Interaction(
                    step_index=1,
                    kind=InteractionKind.TYPE,
                    target_selectors=["#q\x00"],
                    value="a\x00b",
                )
            ],
        )
        source = self.compiler.compile(flow).source
        assert "\x00" not in source
        ast.parse(source)

    def test_suite_name_ending_in_quote_is_safe(self):
        compiler = FlowCompiler(CompilerOptions(suite_name='say "hi"'))
        ast.parse(compiler.compile(make_flow()).source)

    def test_custom_retry_settings(self):
        compiler = FlowCompiler(CompilerOptions(retries=5, retry_backoff_ms=250))
        src = compiler.compile(make_flow()).source
        assert "async def retry_action(action, retries=5, backoff_ms=250):" in src

    # ------------------------------------------------------------------ compile_and_write

    def test_compile_and_write(self):
        tmpdir = tempfile.mkdtemp()
        compiler = FlowCompiler(output_dir=tmpdir)
        now = datetime.datetime(2025, 7, 20, 0, 32, 11, 469000, tzinfo=datetime.timezone.utc)
        artifact = compiler.compile_and_write(make_flow(), now=now)
        assert os.path.basename(artifact.path) == "go-back_2025-07-20T00-32-11-469Z.spec.py"
        with open(artifact.path, encoding="utf-8") as f:
            assert f.read() == artifact.script.source


class TestCompileSuite:
    def setup_method(self):
        self.compiler = FlowCompiler()

    def test_suite_has_one_test_per_flow(self):
        script = self.compiler.compile_suite([make_flow(name="go back"), make_flow(name="search")])
        ast.parse(script.source)
        assert "async def test_go_back(self):" in script.source
        assert "async def test_search(self):" in script.source
        assert "async def run_flow_1(context):" in script.source
        assert "async def run_flow_2(context):" in script.source

    def test_suite_dedupes_test_names(self):
        script = self.compiler.compile_suite([make_flow(), make_flow()])
        assert "async def test_go_back(self):" in script.source
        assert "async def test_go_back_2(self):" in script.source

    def test_suite_declares_helpers_once(self):
        script = self.compiler.compile_suite([make_flow(), make_flow(name="other")])
        assert script.source.count("async def retry_action(") == 1

    def test_suite_applies_viewport(self):
        script = self.compiler.compile_suite([make_flow()])
        assert "BROWSER_OPTIONS = {'viewport': {'width': 1280, 'height': 720}}" in script.source
        assert "browser.new_context(**BROWSER_OPTIONS)" in script.source

    def test_empty_suite_raises(self):
        with pytest.raises(ValueError):
            self.compiler.compile_suite([])

    def test_suite_rejects_empty_member(self):
        with pytest.raises(EmptyFlowError):
            self.compiler.compile_suite([make_flow(), make_flow(interactions=[])])

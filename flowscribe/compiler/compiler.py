"""Flow compiler: recorded Flows → standalone Playwright test scripts."""

from __future__ import annotations

import datetime
from typing import Any, Mapping, Sequence

import structlog

from flowscribe.compiler.assertions import final_assertion
from flowscribe.compiler.codegen import (
    camel_case,
    comment_text,
    docstring_text,
    identifier,
    indent_lines,
    quote,
)
from flowscribe.compiler.emitter import StepEmitter
from flowscribe.compiler.normalizer import normalize
from flowscribe.compiler.retry import retry_helper_source
from flowscribe.compiler.selectors import RESOLVE_HELPER, resolver_source
from flowscribe.compiler.tabs import TAB_HELPER, TabSwitchResolver, tab_helper_source
from flowscribe.compiler.types import (
    CompilerOptions,
    Flow,
    GeneratedScript,
    StatementBlock,
    WrittenArtifact,
)
from flowscribe.compiler.writer import ArtifactWriter

logger = structlog.get_logger(__name__)

_IMPORTS = (
    "from __future__ import annotations\n\n"
    "import asyncio\n"
    "import re\n\n"
    "import pytest\n"
    "from playwright.async_api import async_playwright, expect"
)

# Emission order of optional module-level helpers
_HELPER_ORDER = [TAB_HELPER, RESOLVE_HELPER]


def _run_flow_function(
    function_name: str,
    flow: Flow,
    emitter: StepEmitter,
) -> tuple[str, set[str]]:
    """Render ``async def <function_name>(context)`` and the helpers it needs."""
    lines: list[str] = [f"async def {function_name}(context):"]
    body: list[str] = [
        "# Set timeout for this test",
        "context.set_default_timeout(TIMEOUT_MS)",
        "page = await context.new_page()",
        "",
    ]
    if flow.initial_url:
        body.append(f"# Navigate to {comment_text(flow.initial_url)}")
        body.append(f"await page.goto({quote(flow.initial_url)})")
        body.append("")

    helpers: set[str] = set()
    blocks: list[StatementBlock] = [emitter.emit(i) for i in flow.interactions]
    blocks.append(final_assertion())
    for block in blocks:
        helpers |= block.helpers
        body.extend(block.render(indent=""))
        body.append("")
    body.append("return page")

    lines.extend(indent_lines(body))
    return "\n".join(lines), helpers


def _helper_sources(options: CompilerOptions, needed: set[str]) -> list[str]:
    sources = [retry_helper_source(options.retries, options.retry_backoff_ms)]
    for helper in _HELPER_ORDER:
        if helper not in needed:
            continue
        if helper == TAB_HELPER:
            sources.append(tab_helper_source())
        elif helper == RESOLVE_HELPER:
            source = resolver_source(options.selector_policy)
            if source is not None:
                sources.append(source)
    return [s.rstrip("\n") for s in sources]


def _test_method(method_name: str, run_name: str, context_args: str = "") -> str:
    return "\n".join(
        [
            f"    async def {method_name}(self):",
            "        async with async_playwright() as playwright:",
            "            browser = await playwright.chromium.launch()",
            f"            context = await browser.new_context({context_args})",
            "            try:",
            f"                await asyncio.wait_for({run_name}(context), timeout=TIMEOUT_MS / 1000)",
            "            finally:",
            "                await browser.close()",
        ]
    )


def _unique_names(flows: Sequence[Flow]) -> list[str]:
    used: dict[str, int] = {}
    names: list[str] = []
    for flow in flows:
        base = identifier(flow.name, prefix="test_")
        count = used.get(base, 0) + 1
        used[base] = count
        names.append(base if count == 1 else f"{base}_{count}")
    return names


class FlowCompiler:
    """
    Compiles a recorded Flow into a self-contained Playwright test module.

    Compilation is a pure function of the Flow and the options: the same
    input always yields byte-identical source. The only I/O happens in
    ``compile_and_write``.
    """

    def __init__(
        self,
        options: CompilerOptions | None = None,
        output_dir: str | None = None,
    ) -> None:
        self.options = options or CompilerOptions()
        self._writer = ArtifactWriter(output_dir, suffix=self.options.file_suffix)

    def _emitter(self) -> StepEmitter:
        return StepEmitter(self.options, TabSwitchResolver(self.options))

    def compile(self, flow: Flow | Mapping[str, Any]) -> GeneratedScript:
        """
        Normalize and compile one Flow.

        Raises ``EmptyFlowError``, ``InvalidInteractionError`` or
        ``MissingTargetError``; nothing is emitted when any of them fires.
        """
        flow = normalize(flow)
        emitter = self._emitter()
        suite_class = f"Test{camel_case(self.options.suite_name) or 'Flows'}"
        method_name = _unique_names([flow])[0]

        run_source, needed = _run_flow_function("run_flow", flow, emitter)

        parts: list[str] = []

        # 1. Module docstring
        parts.append(
            '"""\n'
            f"suite: {docstring_text(self.options.suite_name)}\n"
            f"test: {docstring_text(flow.name)}\n"
            f"recorded_at: {docstring_text(flow.recorded_at)}\n"
            f"steps: {len(flow.interactions)}\n"
            '"""'
        )

        # 2. Imports
        parts.append(_IMPORTS)

        # 3. Suite constants
        parts.append(
            f"SUITE = {quote(self.options.suite_name)}\n"
            f"TEST_NAME = {quote(flow.name)}\n"
            f"TIMEOUT_MS = {self.options.timeout_ms}\n\n"
            "pytestmark = pytest.mark.asyncio"
        )

        # 4. Retry helper and any helpers the steps need
        parts.extend(_helper_sources(self.options, needed))

        # 5. The flow body
        parts.append(run_source)

        # 6. Suite and test case
        parts.append(
            f"class {suite_class}:\n"
            f'    """{docstring_text(self.options.suite_name)}"""\n\n'
            + _test_method(method_name, "run_flow")
        )

        # 7. __main__ block
        parts.append(
            'if __name__ == "__main__":\n'
            f"    asyncio.run({suite_class}().{method_name}())"
        )

        source = "\n\n\n".join(parts) + "\n"
        logger.info(
            "flow_compiled",
            flow=flow.name,
            steps=len(flow.interactions),
            selector_policy=self.options.selector_policy.tag,
        )
        return GeneratedScript(
            flow_name=flow.name,
            test_name=method_name,
            source=source,
            step_count=len(flow.interactions),
            recorded_at=flow.recorded_at,
            helpers=tuple(h for h in _HELPER_ORDER if h in needed),
        )

    def compile_suite(
        self, flows: Sequence[Flow | Mapping[str, Any]], name: str = ""
    ) -> GeneratedScript:
        """
        Compile several Flows into one module: one ``run_flow_N`` and one
        test method per Flow, helpers declared once, and a shared
        ``BROWSER_OPTIONS`` applied to every new context.
        """
        if not flows:
            raise ValueError("compile_suite() needs at least one flow")
        normalized = [normalize(f) for f in flows]
        emitter = self._emitter()
        suite_class = f"Test{camel_case(self.options.suite_name) or 'Flows'}"
        method_names = _unique_names(normalized)

        run_sources: list[str] = []
        needed: set[str] = set()
        for number, flow in enumerate(normalized, start=1):
            source, helpers = _run_flow_function(f"run_flow_{number}", flow, emitter)
            run_sources.append(source)
            needed |= helpers

        width, height = self.options.viewport
        suite_name = name or self.options.suite_name
        names_literal = "\n".join(
            f"    {quote(method)}: {quote(flow.name)},"
            for method, flow in zip(method_names, normalized)
        )

        parts: list[str] = [
            '"""\n'
            f"suite: {docstring_text(suite_name)}\n"
            f"tests: {len(normalized)}\n"
            f"steps: {sum(len(f.interactions) for f in normalized)}\n"
            '"""',
            _IMPORTS,
            f"SUITE = {quote(suite_name)}\n"
            f"TIMEOUT_MS = {self.options.timeout_ms}\n"
            "TEST_NAMES = {\n" + names_literal + "\n}\n\n"
            "# Configure test settings\n"
            f"BROWSER_OPTIONS = {{'viewport': {{'width': {width}, 'height': {height}}}}}\n\n"
            "pytestmark = pytest.mark.asyncio",
        ]
        parts.extend(_helper_sources(self.options, needed))
        parts.extend(run_sources)

        methods = [
            _test_method(method, f"run_flow_{number}", "**BROWSER_OPTIONS")
            for number, method in enumerate(method_names, start=1)
        ]
        parts.append(
            f"class {suite_class}:\n"
            f'    """{docstring_text(suite_name)}"""\n\n'
            + "\n\n".join(methods)
        )
        parts.append(
            'if __name__ == "__main__":\n'
            "    for test_name in TEST_NAMES:\n"
            f"        asyncio.run(getattr({suite_class}(), test_name)())"
        )

        source = "\n\n\n".join(parts) + "\n"
        step_count = sum(len(f.interactions) for f in normalized)
        logger.info("suite_compiled", suite=suite_name, flows=len(normalized), steps=step_count)
        return GeneratedScript(
            flow_name=suite_name,
            test_name=suite_class,
            source=source,
            step_count=step_count,
            helpers=tuple(h for h in _HELPER_ORDER if h in needed),
        )

    def compile_and_write(
        self,
        flow: Flow | Mapping[str, Any],
        now: datetime.datetime | None = None,
    ) -> WrittenArtifact:
        """Compile one Flow and persist it under a timestamp-derived name."""
        script = self.compile(flow)
        now = now or datetime.datetime.now(datetime.timezone.utc)
        path = self._writer.write(script, script.flow_name, now)
        return WrittenArtifact(
            path=str(path),
            script=script,
            written_at=now.isoformat(),
        )


def compile_flow(
    flow: Flow | Mapping[str, Any], options: CompilerOptions | None = None
) -> GeneratedScript:
    """Compile a single Flow with a throwaway ``FlowCompiler``."""
    return FlowCompiler(options).compile(flow)

"""Flow compiler type definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from flowscribe.compiler.codegen import indent_lines


class InteractionKind(str, Enum):
    NAVIGATE = "navigate"
    WAIT = "wait"
    CLICK = "click"
    TYPE = "type"
    PRESS_KEY = "press_key"
    SCROLL = "scroll"
    SWITCH_TAB = "switch_tab"
    SELECT = "select"
    GO_BACK = "go_back"
    GO_FORWARD = "go_forward"
    RELOAD = "reload"
    SCREENSHOT = "screenshot"
    NEW_TAB = "new_tab"
    CLOSE_TAB = "close_tab"


# Kinds that always act on an element located through candidate selectors
TARGETED_KINDS = frozenset(
    {
        InteractionKind.CLICK,
        InteractionKind.TYPE,
        InteractionKind.PRESS_KEY,
        InteractionKind.SELECT,
    }
)


class TabNotFoundPolicy(str, Enum):
    """What an emitted tab switch does when no open tab matches."""

    CONTINUE = "continue"  # keep the current page, as recorded scripts always did
    RAISE = "raise"  # bounded scan, then TabNotFoundError


@dataclass
class Interaction:
    step_index: int
    kind: InteractionKind
    target_selectors: list[str] | None = None
    value: str | None = None
    duration_ms: int | None = None
    delta: tuple[int, int] | None = None
    title_substring: str | None = None
    url: str | None = None
    # Less common payloads
    url_substring: str | None = None
    tab_index: int | None = None
    options: list[str] | None = None  # SELECT values
    wait_state: str | None = None  # WAIT on a selector
    wait_until: str | None = None  # GO_BACK / GO_FORWARD / RELOAD
    name: str | None = None  # SCREENSHOT
    full_page: bool = True

    @property
    def primary_selector(self) -> str | None:
        if not self.target_selectors:
            return None
        return self.target_selectors[0]


@dataclass
class Flow:
    name: str
    interactions: list[Interaction]
    recorded_at: str = ""
    initial_url: str = ""  # implicit leading navigation, never numbered
    description: str = ""


# ---------------------------------------------------------------------------
# Selector resolution policies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FirstOnly:
    """Execute against the first candidate; the rest are documentation."""

    tag: str = field(default="first_only", init=False)


@dataclass(frozen=True)
class TryInOrderWithTimeout:
    """Try each candidate in order, waiting ``per_attempt_ms`` for visibility."""

    per_attempt_ms: int = 5000
    tag: str = field(default="try_in_order", init=False)


@dataclass(frozen=True)
class TryAllConcurrentFirstWin:
    """Race all candidates; the first visible one wins."""

    timeout_ms: int = 5000
    tag: str = field(default="try_all_concurrent", init=False)


SelectorResolutionPolicy = FirstOnly | TryInOrderWithTimeout | TryAllConcurrentFirstWin


@dataclass(frozen=True)
class CompilerOptions:
    suite_name: str = "intelligent-automation"
    timeout_ms: int = 60000
    retries: int = 3
    retry_backoff_ms: int = 1000
    selector_policy: SelectorResolutionPolicy = field(default_factory=FirstOnly)
    tab_not_found: TabNotFoundPolicy = TabNotFoundPolicy.CONTINUE
    tab_scan_timeout_ms: int = 5000
    settle_after_click: bool = True  # wait for network idle after each click
    viewport: tuple[int, int] = (1280, 720)  # used by multi-flow suites
    file_suffix: str = ".spec.py"


# ---------------------------------------------------------------------------
# Emission output
# ---------------------------------------------------------------------------


@dataclass
class StatementBlock:
    """Source lines for one step, relative to the enclosing function body."""

    comments: list[str] = field(default_factory=list)
    statements: list[str] = field(default_factory=list)
    assertions: list[str] = field(default_factory=list)
    helpers: set[str] = field(default_factory=set)  # module helpers this block needs

    def render(self, indent: str = "    ") -> list[str]:
        lines = [f"# {c}" for c in self.comments]
        lines.extend(self.statements)
        lines.extend(self.assertions)
        return indent_lines(lines, indent)


@dataclass(frozen=True)
class GeneratedScript:
    flow_name: str
    test_name: str
    source: str
    step_count: int
    recorded_at: str = ""
    helpers: tuple[str, ...] = ()


@dataclass
class WrittenArtifact:
    path: str
    script: GeneratedScript
    written_at: str

"""Flow normalizer: raw recorded timelines → validated, numbered Flows."""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import urlparse

import structlog

from flowscribe.compiler.errors import EmptyFlowError, InvalidInteractionError
from flowscribe.compiler.types import Flow, Interaction, InteractionKind

logger = structlog.get_logger(__name__)

# Names used by the capture engine, mapped onto InteractionKind
_RAW_KINDS: dict[str, InteractionKind] = {
    "navigate": InteractionKind.NAVIGATE,
    "wait": InteractionKind.WAIT,
    "click": InteractionKind.CLICK,
    "type": InteractionKind.TYPE,
    "press": InteractionKind.PRESS_KEY,
    "presskey": InteractionKind.PRESS_KEY,
    "press_key": InteractionKind.PRESS_KEY,
    "scroll": InteractionKind.SCROLL,
    "switchtab": InteractionKind.SWITCH_TAB,
    "switch_tab": InteractionKind.SWITCH_TAB,
    "select": InteractionKind.SELECT,
    "goback": InteractionKind.GO_BACK,
    "go_back": InteractionKind.GO_BACK,
    "goforward": InteractionKind.GO_FORWARD,
    "go_forward": InteractionKind.GO_FORWARD,
    "reload": InteractionKind.RELOAD,
    "screenshot": InteractionKind.SCREENSHOT,
    "newtab": InteractionKind.NEW_TAB,
    "new_tab": InteractionKind.NEW_TAB,
    "closetab": InteractionKind.CLOSE_TAB,
    "close_tab": InteractionKind.CLOSE_TAB,
}

_URL_SCHEMES = {"http", "https", "file", "about", "data"}

_WAIT_STATES = {"attached", "detached", "visible", "hidden"}

_LOAD_STATES = {"load", "domcontentloaded", "networkidle", "commit"}

# Scroll direction → unit vector, for recordings that store direction/amount
_DIRECTIONS: dict[str, tuple[int, int]] = {
    "down": (0, 1),
    "up": (0, -1),
    "right": (1, 0),
    "left": (-1, 0),
}


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    """Return the first present key, accepting camelCase and snake_case spellings."""
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _is_absolute_url(url: Any) -> bool:
    if not isinstance(url, str) or not url:
        return False
    parsed = urlparse(url)
    if parsed.scheme not in _URL_SCHEMES:
        return False
    if parsed.scheme in ("http", "https"):
        return bool(parsed.netloc)
    return True


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _int_or_raw(value: Any) -> Any:
    """Coerce integral numbers; leave anything else for ``_validate`` to reject."""
    if value is None:
        return None
    number = _as_int(value)
    return value if number is None else number


def _as_selectors(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _raw_kind(raw: Mapping[str, Any], position: int) -> InteractionKind:
    kind = _pick(raw, "kind", "type", "action")
    if isinstance(kind, InteractionKind):
        return kind
    if isinstance(kind, str):
        found = _RAW_KINDS.get(kind.strip().lower())
        if found is not None:
            return found
    raise InvalidInteractionError(position, f"unknown interaction kind {kind!r}")


def _raw_delta(raw: Mapping[str, Any], position: int) -> tuple[int, int] | None:
    delta = _pick(raw, "delta")
    if delta is not None:
        if isinstance(delta, Mapping):
            delta = (delta.get("dx", delta.get("x")), delta.get("dy", delta.get("y")))
        try:
            dx, dy = delta
        except (TypeError, ValueError) as exc:
            raise InvalidInteractionError(
                position, f"scroll delta must be a (dx, dy) pair, got {delta!r}"
            ) from exc
        dx, dy = _as_int(dx), _as_int(dy)
        if dx is None or dy is None:
            raise InvalidInteractionError(position, f"scroll delta must be integers, got {delta!r}")
        return (dx, dy)

    direction = _pick(raw, "direction")
    if direction is None:
        return None
    unit = _DIRECTIONS.get(str(direction).lower())
    if unit is None:
        raise InvalidInteractionError(position, f"unknown scroll direction {direction!r}")
    raw_amount = _pick(raw, "amount")
    amount = 0 if raw_amount is None else _as_int(raw_amount)
    if amount is None:
        raise InvalidInteractionError(position, f"scroll amount must be an integer, got {raw_amount!r}")
    return (unit[0] * amount, unit[1] * amount)


def interaction_from_raw(raw: Mapping[str, Any] | Interaction, position: int) -> Interaction:
    """Build an Interaction from one raw recorded entry (no validation)."""
    if isinstance(raw, Interaction):
        return raw

    kind = _raw_kind(raw, position)
    step_index = _as_int(_pick(raw, "stepIndex", "step_index"))

    value = _pick(raw, "value", "text", "key")
    options: list[str] | None = None
    if kind == InteractionKind.SELECT:
        if isinstance(value, (list, tuple)):
            options = [str(v) for v in value]
        elif value is not None:
            options = [str(value)]
        value = None
    elif value is not None and not isinstance(value, str):
        value = str(value)

    duration = _pick(raw, "durationMs", "duration_ms", "duration")
    full_page = _pick(raw, "fullPage", "full_page")
    tab_index = _pick(raw, "tabIndex", "tab_index", "index")
    url = _pick(raw, "url")
    url_substring = _pick(raw, "urlSubstring", "url_substring")
    if kind == InteractionKind.SWITCH_TAB and url_substring is None:
        # switch-by-url recordings reuse the plain url field
        url_substring, url = url, None

    return Interaction(
        step_index=step_index if step_index is not None else position,
        kind=kind,
        target_selectors=_as_selectors(
            _pick(raw, "targetSelectors", "target_selectors", "selectors", "selector")
        ),
        value=value,
        duration_ms=_int_or_raw(duration),
        delta=_raw_delta(raw, position),
        title_substring=_pick(raw, "titleSubstring", "title_substring", "title"),
        url=url,
        url_substring=url_substring,
        tab_index=_int_or_raw(tab_index),
        options=options,
        wait_state=_pick(raw, "waitState", "wait_state", "state"),
        wait_until=_pick(raw, "waitUntil", "wait_until"),
        name=_pick(raw, "name"),
        full_page=True if full_page is None else bool(full_page),
    )


def _validate(interaction: Interaction) -> None:
    """Check the payload each kind needs. Selector presence is checked later."""
    idx = interaction.step_index
    kind = interaction.kind

    # Typed Interactions skip raw coercion, so numeric payloads are checked here
    if interaction.duration_ms is not None and not _is_int(interaction.duration_ms):
        raise InvalidInteractionError(idx, f"duration_ms must be an integer, got {interaction.duration_ms!r}")
    if interaction.tab_index is not None and not _is_int(interaction.tab_index):
        raise InvalidInteractionError(idx, f"tab index must be an integer, got {interaction.tab_index!r}")
    if interaction.delta is not None:
        delta = interaction.delta
        if not isinstance(delta, (tuple, list)) or len(delta) != 2 or not all(_is_int(d) for d in delta):
            raise InvalidInteractionError(idx, f"scroll delta must be an integer pair, got {interaction.delta!r}")

    if kind == InteractionKind.NAVIGATE:
        if not _is_absolute_url(interaction.url):
            raise InvalidInteractionError(idx, f"navigate needs an absolute URL, got {interaction.url!r}")

    elif kind == InteractionKind.WAIT:
        if interaction.duration_ms is None:
            if not interaction.target_selectors:
                raise InvalidInteractionError(idx, "wait needs duration_ms or a selector")
        elif interaction.duration_ms <= 0:
            raise InvalidInteractionError(idx, f"wait duration must be positive, got {interaction.duration_ms}")
        if interaction.wait_state is not None and interaction.wait_state not in _WAIT_STATES:
            raise InvalidInteractionError(idx, f"unknown wait state {interaction.wait_state!r}")

    elif kind == InteractionKind.SCROLL:
        if interaction.delta is None and not interaction.target_selectors:
            raise InvalidInteractionError(idx, "scroll needs an integer (dx, dy) delta or a selector")

    elif kind == InteractionKind.SWITCH_TAB:
        if (
            not interaction.title_substring
            and not interaction.url_substring
            and interaction.tab_index is None
        ):
            raise InvalidInteractionError(idx, "switch_tab needs a title substring, URL substring or tab index")
        if interaction.tab_index is not None and interaction.tab_index < 0:
            raise InvalidInteractionError(idx, f"tab index must not be negative, got {interaction.tab_index}")

    elif kind in (InteractionKind.TYPE, InteractionKind.PRESS_KEY):
        if not isinstance(interaction.value, str):
            raise InvalidInteractionError(idx, f"{kind.value} needs a string value")
        if kind == InteractionKind.PRESS_KEY and not interaction.value:
            raise InvalidInteractionError(idx, "press_key needs a key name")

    elif kind == InteractionKind.SELECT:
        if not interaction.options:
            raise InvalidInteractionError(idx, "select needs at least one option value")

    elif kind in (InteractionKind.GO_BACK, InteractionKind.GO_FORWARD, InteractionKind.RELOAD):
        if interaction.wait_until is not None and interaction.wait_until not in _LOAD_STATES:
            raise InvalidInteractionError(idx, f"unknown load state {interaction.wait_until!r}")

    elif kind == InteractionKind.SCREENSHOT:
        if not interaction.name:
            raise InvalidInteractionError(idx, "screenshot needs a name")

    elif kind == InteractionKind.NEW_TAB:
        if interaction.url is not None and not _is_absolute_url(interaction.url):
            raise InvalidInteractionError(idx, f"new_tab URL must be absolute, got {interaction.url!r}")


def normalize(raw: Flow | Mapping[str, Any]) -> Flow:
    """
    Validate a recorded timeline and relabel its explicit steps ``1..n``.

    Accepts either a ``Flow`` or the raw mapping handed over by the capture
    engine. Duplicate navigations are kept verbatim. The input is never
    mutated; a new ``Flow`` is returned.

    Raises ``EmptyFlowError`` when there are no explicit interactions and
    ``InvalidInteractionError`` for unknown kinds or malformed payloads.
    """
    if isinstance(raw, Flow):
        name = raw.name
        recorded_at = raw.recorded_at
        initial_url = raw.initial_url
        description = raw.description
        entries: list[Any] = list(raw.interactions)
    else:
        name = str(_pick(raw, "name") or "")
        recorded_at = str(_pick(raw, "recordedAt", "recorded_at") or "")
        initial_url = str(_pick(raw, "initialUrl", "initial_url", "url") or "")
        description = str(_pick(raw, "description") or "")
        entries = list(_pick(raw, "interactions", "steps", "actions") or [])

    if not entries:
        raise EmptyFlowError(name)

    if initial_url and not _is_absolute_url(initial_url):
        raise InvalidInteractionError(None, f"initial URL must be absolute, got {initial_url!r}")

    interactions = [interaction_from_raw(entry, pos) for pos, entry in enumerate(entries, start=1)]

    seen: set[int] = set()
    for interaction in interactions:
        if interaction.step_index in seen:
            raise InvalidInteractionError(
                interaction.step_index, "duplicate step index in recording"
            )
        seen.add(interaction.step_index)

    ordered = sorted(interactions, key=lambda i: i.step_index)
    relabelled: list[Interaction] = []
    for number, interaction in enumerate(ordered, start=1):
        step = Interaction(
            step_index=number,
            kind=interaction.kind,
            target_selectors=list(interaction.target_selectors)
            if interaction.target_selectors is not None
            else None,
            value=interaction.value,
            duration_ms=interaction.duration_ms,
            delta=interaction.delta,
            title_substring=interaction.title_substring,
            url=interaction.url,
            url_substring=interaction.url_substring,
            tab_index=interaction.tab_index,
            options=list(interaction.options) if interaction.options is not None else None,
            wait_state=interaction.wait_state,
            wait_until=interaction.wait_until,
            name=interaction.name,
            full_page=interaction.full_page,
        )
        _validate(step)
        relabelled.append(step)

    flow = Flow(
        name=name,
        interactions=relabelled,
        recorded_at=recorded_at,
        initial_url=initial_url,
        description=description,
    )
    logger.debug("flow_normalized", flow=name, steps=len(relabelled))
    return flow

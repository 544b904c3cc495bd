"""Loading recorded flows from disk and generated scripts as modules."""

from __future__ import annotations

import importlib.util
import json
import sys
from pathlib import Path
from types import ModuleType

from flowscribe.compiler.errors import InvalidInteractionError
from flowscribe.compiler.normalizer import normalize
from flowscribe.compiler.types import Flow


def load_flow_file(path: str | Path) -> Flow:
    """Load a recorded flow from a JSON file and normalize it."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Flow file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise InvalidInteractionError(None, f"{path} is not valid JSON: {exc.msg}") from exc

    if not isinstance(data, dict):
        raise InvalidInteractionError(None, f"{path} does not contain a flow object")
    return normalize(data)


def load_script(script_path: str | Path, module_name: str | None = None) -> ModuleType:
    """
    Import a generated script as a module, evicting any stale cached copy.

    Errors raised while executing the module body propagate to the caller.
    """
    script_path = Path(script_path)
    module_name = module_name or f"_flowscribe_{script_path.name.split('.')[0].replace('-', '_')}"
    sys.modules.pop(module_name, None)

    spec = importlib.util.spec_from_file_location(module_name, script_path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load generated script from {script_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module

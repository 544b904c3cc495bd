"""Compile-time errors raised while turning a Flow into a script."""

from __future__ import annotations


class FlowError(Exception):
    """Base class for every error that aborts compilation of a single Flow."""


class EmptyFlowError(FlowError):
    """The Flow carries no explicit interactions."""

    def __init__(self, flow_name: str = "") -> None:
        self.flow_name = flow_name
        label = f" {flow_name!r}" if flow_name else ""
        super().__init__(f"Flow{label} has no explicit interactions")


class InvalidInteractionError(FlowError):
    """An interaction's kind or payload cannot be compiled."""

    def __init__(self, step_index: int | None, reason: str) -> None:
        self.step_index = step_index
        self.reason = reason
        where = f"step {step_index}" if step_index is not None else "interaction"
        super().__init__(f"Invalid {where}: {reason}")


class MissingTargetError(FlowError):
    """A targeted interaction arrived with an empty candidate selector list."""

    def __init__(self, step_index: int, kind: str) -> None:
        self.step_index = step_index
        self.kind = kind
        super().__init__(
            f"Step {step_index} ({kind}) requires at least one candidate selector"
        )


class WriteError(FlowError):
    """The generated script could not be persisted."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Could not write {path!r}: {reason}")

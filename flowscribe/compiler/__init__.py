"""Interaction-to-script compiler public API."""

from flowscribe.compiler.assertions import final_assertion
from flowscribe.compiler.compiler import FlowCompiler, compile_flow
from flowscribe.compiler.emitter import StepEmitter
from flowscribe.compiler.errors import (
    EmptyFlowError,
    FlowError,
    InvalidInteractionError,
    MissingTargetError,
    WriteError,
)
from flowscribe.compiler.loader import load_flow_file, load_script
from flowscribe.compiler.normalizer import normalize
from flowscribe.compiler.retry import retry_helper_source
from flowscribe.compiler.selectors import require_candidates
from flowscribe.compiler.tabs import TabSwitchResolver
from flowscribe.compiler.types import (
    CompilerOptions,
    FirstOnly,
    Flow,
    GeneratedScript,
    Interaction,
    InteractionKind,
    SelectorResolutionPolicy,
    StatementBlock,
    TabNotFoundPolicy,
    TryAllConcurrentFirstWin,
    TryInOrderWithTimeout,
    WrittenArtifact,
)
from flowscribe.compiler.writer import ArtifactWriter, artifact_filename, slugify

__all__ = [
    "ArtifactWriter",
    "CompilerOptions",
    "EmptyFlowError",
    "FirstOnly",
    "Flow",
    "FlowCompiler",
    "FlowError",
    "GeneratedScript",
    "Interaction",
    "InteractionKind",
    "InvalidInteractionError",
    "MissingTargetError",
    "SelectorResolutionPolicy",
    "StatementBlock",
    "StepEmitter",
    "TabNotFoundPolicy",
    "TabSwitchResolver",
    "TryAllConcurrentFirstWin",
    "TryInOrderWithTimeout",
    "WriteError",
    "WrittenArtifact",
    "artifact_filename",
    "compile_flow",
    "final_assertion",
    "load_flow_file",
    "load_script",
    "normalize",
    "require_candidates",
    "retry_helper_source",
    "slugify",
]

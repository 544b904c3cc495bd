from flowscribe.compiler import (
    CompilerOptions,
    EmptyFlowError,
    FirstOnly,
    Flow,
    FlowCompiler,
    FlowError,
    GeneratedScript,
    Interaction,
    InteractionKind,
    InvalidInteractionError,
    MissingTargetError,
    TabNotFoundPolicy,
    TryAllConcurrentFirstWin,
    TryInOrderWithTimeout,
    WriteError,
    WrittenArtifact,
    compile_flow,
    load_flow_file,
    normalize,
)
from flowscribe.logging_config import configure_logging

__all__ = [
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
    "TabNotFoundPolicy",
    "TryAllConcurrentFirstWin",
    "TryInOrderWithTimeout",
    "WriteError",
    "WrittenArtifact",
    "compile_flow",
    "configure_logging",
    "load_flow_file",
    "normalize",
]

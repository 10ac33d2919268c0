"""
Error taxonomy of the repair pipeline.

Per-task errors derive from RepairPipelineError and carry an ErrorKind so the
batch runner can turn them into structured outcomes. EngineInitError is the
only batch-level error: it aborts the remaining tasks.
"""

import enum


class ErrorKind(str, enum.Enum):
    READ_ERROR = "READ_ERROR"
    INFERENCE_ERROR = "INFERENCE_ERROR"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    DEGENERATE_REGION = "DEGENERATE_REGION"
    REPAIR_ERROR = "REPAIR_ERROR"
    SAVE_ERROR = "SAVE_ERROR"
    UNEXPECTED = "UNEXPECTED"


class FailureKind(str, enum.Enum):
    """Kinds of an overall batch failure reported to the caller."""

    NO_DETECTION = "NO_DETECTION"
    ERR = "ERR"


class RepairPipelineError(Exception):
    kind: ErrorKind = ErrorKind.UNEXPECTED


class ReadError(RepairPipelineError):
    kind = ErrorKind.READ_ERROR


class InferenceError(RepairPipelineError):
    kind = ErrorKind.INFERENCE_ERROR


class RepairError(RepairPipelineError):
    kind = ErrorKind.REPAIR_ERROR


class SaveError(RepairPipelineError):
    kind = ErrorKind.SAVE_ERROR


class EngineInitError(Exception):
    """The inference engine could not be created at all."""

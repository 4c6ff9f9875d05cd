from .exceptions import (
    RecoverableException,
    is_recoverable,
    InvalidValueError,
    CompilationError,
    TimelineConflictError,
    RampEvaluationError,
    DeviceLimitError,
    NamespaceCollisionError,
    BitfieldWidthError,
)

__all__ = [
    "RecoverableException",
    "is_recoverable",
    "InvalidValueError",
    "CompilationError",
    "TimelineConflictError",
    "RampEvaluationError",
    "DeviceLimitError",
    "NamespaceCollisionError",
    "BitfieldWidthError",
]

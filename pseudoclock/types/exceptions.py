from __future__ import annotations

from typing import Optional

import tblib.pickling_support


@tblib.pickling_support.install
class RecoverableException(Exception):
    """Base class for errors caused by the inputs of a compilation.

    Fixing the timelines, the settings or the device registry and compiling again
    makes the error go away.
    Raise one of the subclasses below rather than this class.
    """


def is_recoverable(error: BaseException) -> bool:
    """Indicates if an error comes from invalid inputs.

    Returns True for a :class:`RecoverableException`, for an error chained from one,
    and for a group whose members are all recoverable.
    """

    match error:
        case RecoverableException():
            return True
        case BaseException(__cause__=BaseException() as cause):
            return is_recoverable(cause)
        case BaseExceptionGroup():
            return all(map(is_recoverable, error.exceptions))
    return False


@tblib.pickling_support.install
class InvalidValueError(ValueError, RecoverableException):
    """Raised when a value given to the compiler is not acceptable."""


@tblib.pickling_support.install
class CompilationError(InvalidValueError):
    """Base class for the errors that abort the compilation of a shot.

    Compilation is a pure function of the timelines and the device registry, so
    retrying without changing them fails in the same way.

    Attributes:
        device: The name of the device the error relates to, if known.
        output: The name of the output the error relates to, if known.
        time: The time in seconds at which the error occurs, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        device: Optional[str] = None,
        output: Optional[str] = None,
        time: Optional[float] = None,
    ):
        super().__init__(message)
        self.device = device
        self.output = output
        self.time = time

    def __reduce__(self):
        return (
            _rebuild_compilation_error,
            (type(self), self.args, self.device, self.output, self.time),
            self.__dict__,
        )


def _rebuild_compilation_error(cls, args, device, output, time):
    return cls(*args, device=device, output=output, time=time)


@tblib.pickling_support.install
class TimelineConflictError(CompilationError):
    """Raised when instructions overlap or contradict each other.

    This covers conflicts inside a single timeline (overlapping instructions,
    instructions outside the shot) as well as conflicts between sibling outputs that
    share the same clock.
    """

    pass


@tblib.pickling_support.install
class RampEvaluationError(CompilationError):
    """Raised when a ramp produces a non-finite or out of range sample."""

    pass


@tblib.pickling_support.install
class DeviceLimitError(CompilationError):
    """Raised when compiled data exceed a capacity or value range of a device."""

    pass


@tblib.pickling_support.install
class NamespaceCollisionError(CompilationError):
    """Raised when two devices or two outputs claim the same name."""

    pass


@tblib.pickling_support.install
class BitfieldWidthError(CompilationError):
    """Raised when boolean arrays can't be packed into the requested integer type."""

    pass

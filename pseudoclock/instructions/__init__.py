"""Instructions recorded on the timelines of outputs and clocking devices."""

from . import functions
from ._instructions import (
    Constant,
    Ramp,
    Wait,
    RampFunction,
    Instruction,
    OutputInstruction,
    constant,
    ramp,
)
from ._timeline import Timeline

__all__ = [
    "Constant",
    "Ramp",
    "Wait",
    "RampFunction",
    "Instruction",
    "OutputInstruction",
    "constant",
    "ramp",
    "Timeline",
    "functions",
]

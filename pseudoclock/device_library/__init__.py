"""Reference devices that can be compiled with pseudoclock."""

from ._analog_card import AnalogCard
from ._dds import DDSCard, register_dtype
from ._digital_card import DigitalCard
from ._pulse_generator import (
    PulseGenerator,
    OpCode,
    pulse_program_dtype,
    wait_dtype,
)

__all__ = [
    "AnalogCard",
    "DDSCard",
    "register_dtype",
    "DigitalCard",
    "PulseGenerator",
    "OpCode",
    "pulse_program_dtype",
    "wait_dtype",
]

"""Outputs of the devices, each holding the timeline of its requested values."""

from ._outputs import (
    AnalogOutput,
    DigitalOutput,
    CompositeOutput,
    Output,
    Channel,
    Limits,
)

__all__ = [
    "AnalogOutput",
    "DigitalOutput",
    "CompositeOutput",
    "Output",
    "Channel",
    "Limits",
]

from __future__ import annotations

from collections.abc import Sequence

import attrs
import numpy as np

from ..clock import ClockProgram, ClockRate
from ..device import CompiledOutputs, DeviceData, DeviceName, expand_device_outputs
from ..device.validators import (
    check_minimum_interval,
    check_sample_count,
    check_value_range,
)
from ..outputs import AnalogOutput


def _code_dtype(bits: int) -> np.dtype:
    if bits <= 16:
        return np.dtype(np.uint16)
    return np.dtype(np.uint32)


@attrs.frozen
class AnalogCard:
    """A buffered analog output card.

    Each output is converted to an unsigned integer code of `bits` bits spanning the
    voltage range of the card linearly.

    Attributes:
        name: The name of the device.
        clocked_by: The pseudoclock that drives the card.
        outputs: The analog outputs of the card, in channel order.
        clock_rate: The clock of the pseudoclock the card listens to.
        bits: The resolution of the digital to analog converters.
        voltage_range: The lowest and highest voltage the card can output.
        max_samples: The number of samples the buffer of the card can hold.
        min_interval: The shortest time between two updates of the card.
    """

    name: DeviceName
    clocked_by: DeviceName
    outputs: tuple[AnalogOutput, ...] = attrs.field(converter=tuple)
    clock_rate: ClockRate = ClockRate.FAST
    bits: int = attrs.field(
        default=16,
        validator=[attrs.validators.ge(1), attrs.validators.le(32)],
    )
    voltage_range: tuple[float, float] = (-10.0, 10.0)
    max_samples: int = 2**24
    min_interval: float = 1e-6

    def get_outputs(self) -> Sequence[AnalogOutput]:
        return self.outputs

    def expand(self, program: ClockProgram) -> CompiledOutputs:
        return expand_device_outputs(self, program)

    def validate(self, compiled: CompiledOutputs) -> None:
        check_sample_count(compiled, self.max_samples)
        check_minimum_interval(compiled, self.min_interval)
        low, high = self.voltage_range
        for output in self.outputs:
            check_value_range(compiled, output.name, low, high)

    def encode(self, compiled: CompiledOutputs) -> DeviceData:
        low, high = self.voltage_range
        full_scale = 2**self.bits - 1
        dtype = _code_dtype(self.bits)
        codes = np.empty((compiled.number_of_ticks, len(self.outputs)), dtype=dtype)
        for channel, output in enumerate(self.outputs):
            values = compiled[output.name]
            codes[:, channel] = np.rint((values - low) / (high - low) * full_scale)
        names = np.array(
            [output.name.encode("utf-8") for output in self.outputs], dtype=np.bytes_
        )
        return DeviceData(
            datasets={"ANALOG_OUTS": codes, "channels": names},
            attributes={
                "bits": self.bits,
                "voltage_min": low,
                "voltage_max": high,
                "clock_rate": self.clock_rate.value,
            },
        )

from __future__ import annotations

from collections.abc import Mapping, Sequence

import attrs
import numpy as np

from ..bitfield import pack_bits
from ..clock import ClockProgram, ClockRate
from ..device import CompiledOutputs, DeviceData, DeviceName, expand_device_outputs
from ..device.validators import check_minimum_interval, check_sample_count
from ..formatter import fmt
from ..outputs import DigitalOutput
from ..types.exceptions import DeviceLimitError

_port_dtypes = {8: np.uint8, 16: np.uint16, 32: np.uint32}


def _to_lines(value: Mapping[int, DigitalOutput]) -> dict[int, DigitalOutput]:
    return dict(sorted(value.items()))


@attrs.frozen
class DigitalCard:
    """A buffered digital output card whose lines are grouped in ports.

    Line `n` is bit `n % port_width` of port `n // port_width`.
    The states of the lines of each port are packed into one unsigned integer per
    tick, stored in the dataset `port<index>`.
    Unused lines are low.

    Attributes:
        name: The name of the device.
        clocked_by: The pseudoclock that drives the card.
        lines: The digital outputs of the card, indexed by line number.
        clock_rate: The clock of the pseudoclock the card listens to.
        ports: The number of ports of the card.
        port_width: The number of lines of each port.
        max_samples: The number of samples the buffer of the card can hold.
        min_interval: The shortest time between two updates of the card.
    """

    name: DeviceName
    clocked_by: DeviceName
    lines: dict[int, DigitalOutput] = attrs.field(converter=_to_lines)
    clock_rate: ClockRate = ClockRate.FAST
    ports: int = 1
    port_width: int = attrs.field(
        default=32, validator=attrs.validators.in_(_port_dtypes)
    )
    max_samples: int = 2**24
    min_interval: float = 100e-9

    def get_outputs(self) -> Sequence[DigitalOutput]:
        return list(self.lines.values())

    def expand(self, program: ClockProgram) -> CompiledOutputs:
        return expand_device_outputs(self, program)

    def validate(self, compiled: CompiledOutputs) -> None:
        for line, output in self.lines.items():
            if not 0 <= line < self.ports * self.port_width:
                raise DeviceLimitError(
                    fmt(
                        "{:output} is connected to line {}, but {:device} only has "
                        "{} lines",
                        output.name,
                        line,
                        self.name,
                        self.ports * self.port_width,
                    ),
                    device=self.name,
                    output=output.name,
                )
        check_sample_count(compiled, self.max_samples)
        check_minimum_interval(compiled, self.min_interval)

    def encode(self, compiled: CompiledOutputs) -> DeviceData:
        dtype = _port_dtypes[self.port_width]
        datasets = {}
        for port in range(self.ports):
            bits = {
                line % self.port_width: compiled[output.name]
                for line, output in self.lines.items()
                if line // self.port_width == port
            }
            if bits:
                datasets[f"port{port}"] = pack_bits(bits, dtype)
            else:
                datasets[f"port{port}"] = np.zeros(compiled.number_of_ticks, dtype)
        return DeviceData(
            datasets=datasets,
            attributes={
                "ports": self.ports,
                "port_width": self.port_width,
                "clock_rate": self.clock_rate.value,
            },
        )

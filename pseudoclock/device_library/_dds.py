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
from ..outputs import CompositeOutput

register_dtype = np.dtype(
    [
        ("frequency", np.uint32),
        ("amplitude", np.uint16),
        ("phase", np.uint16),
        ("gate", np.bool_),
    ]
)


@attrs.frozen
class DDSCard:
    """A direct digital synthesizer with a table of frequency, amplitude and phase.

    Each output is converted to the register values of the synthesizer:

    * the frequency tuning word is `round(f * 2**32 / reference_clock)`,
    * the amplitude scale factor is `round(a * (2**amplitude_bits - 1))`,
    * the phase offset word is `round(phase / 360 * 2**16) mod 2**16`.

    The register values of each output are stored in the dataset `<name>`, and their
    hexadecimal representation `FTW ASF POW` in the dataset `registers/<name>`.

    Attributes:
        name: The name of the device.
        clocked_by: The pseudoclock that drives the card.
        outputs: The composite outputs of the card.
        clock_rate: The clock of the pseudoclock the card listens to.
        reference_clock: The frequency of the system clock of the synthesizer, in Hz.
        amplitude_bits: The resolution of the amplitude scale factor.
        max_samples: The number of table entries the card can hold.
        min_interval: The shortest time between two table entries.
    """

    name: DeviceName
    clocked_by: DeviceName
    outputs: tuple[CompositeOutput, ...] = attrs.field(converter=tuple)
    clock_rate: ClockRate = ClockRate.SLOW
    reference_clock: float = 1e9
    amplitude_bits: int = attrs.field(
        default=14,
        validator=[attrs.validators.ge(1), attrs.validators.le(16)],
    )
    max_samples: int = 1024
    min_interval: float = 1e-6

    def get_outputs(self) -> Sequence[CompositeOutput]:
        return self.outputs

    def expand(self, program: ClockProgram) -> CompiledOutputs:
        return expand_device_outputs(self, program)

    def validate(self, compiled: CompiledOutputs) -> None:
        check_sample_count(compiled, self.max_samples)
        check_minimum_interval(compiled, self.min_interval)
        for output in self.outputs:
            check_value_range(
                compiled, f"{output.name}.frequency", 0.0, self.reference_clock / 2
            )
            check_value_range(compiled, f"{output.name}.amplitude", 0.0, 1.0)

    def encode(self, compiled: CompiledOutputs) -> DeviceData:
        datasets = {}
        for output in self.outputs:
            registers = np.zeros(compiled.number_of_ticks, dtype=register_dtype)
            frequency = compiled[f"{output.name}.frequency"]
            amplitude = compiled[f"{output.name}.amplitude"]
            phase = compiled[f"{output.name}.phase"]
            registers["frequency"] = np.rint(frequency * 2**32 / self.reference_clock)
            registers["amplitude"] = np.rint(
                amplitude * (2**self.amplitude_bits - 1)
            )
            registers["phase"] = np.mod(
                np.rint(np.mod(phase, 360.0) / 360.0 * 2**16), 2**16
            )
            if output.gate is not None:
                registers["gate"] = compiled[f"{output.name}.gate"]
            else:
                registers["gate"] = True
            datasets[output.name] = registers
            datasets[f"registers/{output.name}"] = np.array(
                [
                    f"{int(row['frequency']):08X} {int(row['amplitude']):04X} "
                    f"{int(row['phase']):04X}".encode("ascii")
                    for row in registers
                ],
                dtype="S18",
            )
        return DeviceData(
            datasets=datasets,
            attributes={
                "reference_clock": self.reference_clock,
                "amplitude_bits": self.amplitude_bits,
                "clock_rate": self.clock_rate.value,
            },
        )

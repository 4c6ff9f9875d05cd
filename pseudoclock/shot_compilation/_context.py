from __future__ import annotations

from collections.abc import Mapping

import attrs
import numpy as np

from ..clock import ClockProgram
from ..device import DeviceRegistry, DeviceName, CompiledOutputs, DeviceData
from ..settings import CompilerSettings


def _check_stop_time(instance, attribute, value: float) -> None:
    if not value > 0:
        raise ValueError(f"Stop time must be positive, got {value}")


@attrs.frozen
class CompilationContext:
    """Everything needed to compile a shot.

    Attributes:
        registry: The devices taking part in the shot.
        stop_time: The time in seconds at which the shot ends.
        settings: The parameters of the compiler.
    """

    registry: DeviceRegistry = attrs.field(
        validator=attrs.validators.instance_of(DeviceRegistry)
    )
    stop_time: float = attrs.field(converter=float, validator=_check_stop_time)
    settings: CompilerSettings = attrs.field(factory=CompilerSettings)


@attrs.frozen(eq=False)
class CompiledShot:
    """The result of the compilation of a shot.

    Attributes:
        programs: The clock program of each pseudoclock.
        outputs: The raw samples of each device.
        device_data: The encoded data of each device, in registry order.
    """

    programs: dict[DeviceName, ClockProgram]
    outputs: dict[DeviceName, CompiledOutputs]
    device_data: dict[DeviceName, DeviceData]

    def raw_samples(self, device: DeviceName) -> Mapping[str, np.ndarray]:
        return self.outputs[device].samples

from __future__ import annotations

from collections.abc import Mapping, Iterator
from typing import Any

import attrs
import numpy as np

from ._name import DeviceName
from ..clock import ClockProgram, ClockRate


def _freeze_arrays(value: Mapping[str, Any]) -> dict[str, np.ndarray]:
    arrays = {}
    for key, array in value.items():
        array = np.array(array)
        array.flags.writeable = False
        arrays[key] = array
    return arrays


@attrs.frozen(eq=False)
class CompiledOutputs:
    """The raw samples of all the channels of a device.

    It maps the name of each channel to its array of samples, one per tick of the
    clock the device listens to.
    The arrays are read-only.

    Attributes:
        device: The name of the device.
        program: The clock program the samples were computed for.
        rate: The clock of the pseudoclock the device listens to.
        samples: The arrays of samples, indexed by channel name.
    """

    device: DeviceName
    program: ClockProgram
    rate: ClockRate
    samples: dict[str, np.ndarray] = attrs.field(converter=_freeze_arrays)

    def __getitem__(self, channel: str) -> np.ndarray:
        return self.samples[channel]

    def __iter__(self) -> Iterator[str]:
        return iter(self.samples)

    def __len__(self) -> int:
        return len(self.samples)

    def __contains__(self, channel: object) -> bool:
        return channel in self.samples

    def items(self):
        return self.samples.items()

    @property
    def number_of_ticks(self) -> int:
        return self.program.number_of_ticks(self.rate)


@attrs.frozen(eq=False)
class DeviceData:
    """The encoded data of a device, ready to be stored.

    Attributes:
        datasets: Arrays in the native format of the device, indexed by name.
            A name can contain `/` to place the array in a sub-group.
        attributes: Scalar metadata of the device.
    """

    datasets: dict[str, np.ndarray] = attrs.field(converter=_freeze_arrays)
    attributes: dict[str, Any] = attrs.field(factory=dict, converter=dict)

    def with_datasets(self, datasets: Mapping[str, Any]) -> DeviceData:
        """Returns a copy with additional datasets.

        Raises:
            ValueError: If one of the datasets already exists.
        """

        if overlap := set(datasets) & set(self.datasets):
            raise ValueError(f"Datasets {sorted(overlap)} already exist")
        return DeviceData({**self.datasets, **datasets}, self.attributes)

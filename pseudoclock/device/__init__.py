"""Defines how devices take part in the compilation of a shot.

A device is any object that satisfies the :class:`DeviceCompiler` protocol.
Devices producing a clock also satisfy :class:`PseudoclockCompiler`.
"""

from . import validators
from ._compiled import CompiledOutputs, DeviceData
from ._device import (
    DeviceCompiler,
    PseudoclockCompiler,
    get_clocked_timelines,
    expand_device_outputs,
)
from ._name import DeviceName, is_device_name
from ._registry import DeviceRegistry
from ._storage import ShotStorage, MemoryStorage, HDF5Storage

__all__ = [
    "validators",
    "CompiledOutputs",
    "DeviceData",
    "DeviceCompiler",
    "PseudoclockCompiler",
    "get_clocked_timelines",
    "expand_device_outputs",
    "DeviceName",
    "is_device_name",
    "DeviceRegistry",
    "ShotStorage",
    "MemoryStorage",
    "HDF5Storage",
]

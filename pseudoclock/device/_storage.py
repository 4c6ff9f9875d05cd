from __future__ import annotations

import abc
import json
import logging
import os
import shutil
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable, Any

import h5py
import numpy as np

from ._compiled import DeviceData
from ._name import DeviceName
from ..formatter import fmt
from ..types.exceptions import NamespaceCollisionError

logger = logging.getLogger(__name__)


@runtime_checkable
class ShotStorage(Protocol):
    """Persists the compiled data of the devices of a shot."""

    @abc.abstractmethod
    def write_devices(self, data: Mapping[DeviceName, DeviceData]) -> None:
        """Stores the data of several devices at once.

        Either all the devices are stored, or none is.

        Raises:
            NamespaceCollisionError: If data is already stored for one of the devices.
        """

        raise NotImplementedError


class MemoryStorage(ShotStorage):
    """Keeps the device data in a dictionary."""

    def __init__(self):
        self.devices: dict[DeviceName, DeviceData] = {}

    def write_devices(self, data: Mapping[DeviceName, DeviceData]) -> None:
        _check_not_stored(data, self.devices)
        self.devices.update(data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.devices)!r})"


class HDF5Storage(ShotStorage):
    """Stores the device data in an HDF5 file.

    The data of each device is written to the group `/devices/<name>`, with one
    dataset per array and the device attributes as group attributes.

    The file is written to a temporary copy that replaces the original file only
    once all the devices are written, so that the file is never left with only a
    part of the devices.
    """

    def __init__(self, path: os.PathLike | str):
        self.path = Path(path)

    def write_devices(self, data: Mapping[DeviceName, DeviceData]) -> None:
        if self.path.exists():
            _check_not_stored(data, self.stored_devices())

        file_descriptor, temporary = tempfile.mkstemp(
            suffix=".h5", prefix=f".{self.path.name}.", dir=self.path.parent
        )
        os.close(file_descriptor)
        try:
            if self.path.exists():
                shutil.copyfile(self.path, temporary)
                mode = "a"
            else:
                mode = "w"
            with h5py.File(temporary, mode, libver="latest") as f:
                devices = f.require_group("devices")
                for name, device_data in data.items():
                    _write_device(devices.create_group(name), device_data)
            os.replace(temporary, self.path)
        except BaseException:
            Path(temporary).unlink(missing_ok=True)
            raise
        logger.info("Stored %d devices in %s", len(data), self.path)

    def stored_devices(self) -> list[DeviceName]:
        if not self.path.exists():
            return []
        with h5py.File(self.path, "r") as f:
            if "devices" not in f:
                return []
            return [DeviceName(name) for name in f["devices"]]

    def read_device(self, name: DeviceName) -> DeviceData:
        """Loads the data of a device from the file."""

        with h5py.File(self.path, "r") as f:
            group = f["devices"][name]
            datasets: dict[str, np.ndarray] = {}

            def visit(path: str, item) -> None:
                if isinstance(item, h5py.Dataset):
                    datasets[path] = item[()]

            group.visititems(visit)
            attributes = {
                key: _read_attribute(value) for key, value in group.attrs.items()
            }
        return DeviceData(datasets, attributes)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"


def _check_not_stored(
    data: Mapping[DeviceName, DeviceData], stored: Mapping | list
) -> None:
    for name in data:
        if name in stored:
            raise NamespaceCollisionError(
                fmt("Data for {:device} is already stored", name), device=name
            )


def _write_device(group: h5py.Group, data: DeviceData) -> None:
    for path, array in data.datasets.items():
        group.create_dataset(path, data=array)
    for key, value in data.attributes.items():
        group.attrs[key] = _write_attribute(value)


def _write_attribute(value: Any) -> Any:
    if isinstance(value, (str, bool, int, float, np.generic, np.ndarray)):
        return value
    return json.dumps({"json": value})


def _read_attribute(value: Any) -> Any:
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    if isinstance(value, str) and value.startswith('{"json": '):
        return json.loads(value)["json"]
    if isinstance(value, np.generic):
        return value.item()
    return value

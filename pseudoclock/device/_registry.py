from __future__ import annotations

import collections
from collections.abc import Iterable, Iterator

from ._device import DeviceCompiler, PseudoclockCompiler
from ._name import DeviceName, is_device_name
from ..formatter import fmt
from ..types.exceptions import NamespaceCollisionError, TimelineConflictError


class DeviceRegistry:
    """Ordered collection of the devices taking part in a shot.

    The registry is passed explicitly to the compiler, device names are only required
    to be unique within a registry.

    Devices given to the constructor are stored as is, so that a registry can be
    built from an arbitrary list of devices and checked later with :meth:`validate`.
    Devices added with :meth:`register` are checked immediately.
    """

    def __init__(self, devices: Iterable[DeviceCompiler] = ()):
        self._devices: list[DeviceCompiler] = list(devices)

    def register(self, device: DeviceCompiler) -> None:
        """Adds a device to the registry.

        Raises:
            NamespaceCollisionError: If a device with the same name is already
                registered.
        """

        if device.name in self.names():
            raise NamespaceCollisionError(
                fmt("{:device} is already registered", device.name),
                device=device.name,
            )
        self._devices.append(device)

    def names(self) -> list[DeviceName]:
        return [device.name for device in self._devices]

    def __getitem__(self, name: DeviceName) -> DeviceCompiler:
        for device in self._devices:
            if device.name == name:
                return device
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return name in self.names()

    def __iter__(self) -> Iterator[DeviceCompiler]:
        return iter(self._devices)

    def __len__(self) -> int:
        return len(self._devices)

    def pseudoclocks(self) -> list[PseudoclockCompiler]:
        """Returns the devices that produce a clock, in registration order."""

        return [
            device
            for device in self._devices
            if isinstance(device, PseudoclockCompiler)
        ]

    def clocked_by(self, clock: DeviceName) -> list[DeviceCompiler]:
        """Returns the devices driven by a pseudoclock, including the pseudoclock."""

        return [
            device
            for device in self._devices
            if device.name == clock or device.clocked_by == clock
        ]

    def validate(self) -> None:
        """Checks the names and the clock topology of the devices.

        Raises:
            NamespaceCollisionError: If two devices have the same name, or if two
                channels of a device have the same name.
            TimelineConflictError: If a device is driven by a device that is not a
                registered pseudoclock, or if a pseudoclock is driven by another one.
        """

        counts = collections.Counter(device.name for device in self._devices)
        for name, count in counts.items():
            if not is_device_name(name):
                raise NamespaceCollisionError(
                    f"Device names must be non-empty strings, got {name!r}",
                    device=name,
                )
            if count > 1:
                raise NamespaceCollisionError(
                    fmt(
                        "{} devices are named {:device}, device names must be unique",
                        count,
                        name,
                    ),
                    device=name,
                )

        clocks = {device.name for device in self.pseudoclocks()}
        for device in self._devices:
            channels = collections.Counter(
                channel.name
                for output in device.get_outputs()
                for channel in output.channels()
            )
            for channel, count in channels.items():
                if count > 1:
                    raise NamespaceCollisionError(
                        fmt(
                            "{:device} has {} channels named {:output}",
                            device.name,
                            count,
                            channel,
                        ),
                        device=device.name,
                        output=channel,
                    )
            if device.name in clocks:
                if device.clocked_by is not None:
                    raise TimelineConflictError(
                        fmt(
                            "Pseudoclock {:device} can't be driven by {:device}",
                            device.name,
                            device.clocked_by,
                        ),
                        device=device.name,
                    )
            elif device.clocked_by not in clocks:
                raise TimelineConflictError(
                    fmt(
                        "{:device} is driven by {:device}, which is not a registered "
                        "pseudoclock",
                        device.name,
                        device.clocked_by,
                    ),
                    device=device.name,
                )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._devices!r})"

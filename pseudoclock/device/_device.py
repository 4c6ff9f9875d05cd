from __future__ import annotations

import abc
import logging
from collections.abc import Sequence, Mapping
from typing import Protocol, runtime_checkable, Optional

from ._compiled import CompiledOutputs, DeviceData
from ._name import DeviceName
from ..clock import ClockProgram, ClockRate, ClockedTimeline
from ..expansion import expand_output
from ..formatter import fmt
from ..instructions import Timeline
from ..outputs import Output
from ..types.exceptions import NamespaceCollisionError

logger = logging.getLogger(__name__)


@runtime_checkable
class DeviceCompiler(Protocol):
    """Compiles the outputs of a device into its native data.

    A device doesn't need to inherit from this class, it only needs to provide the
    attributes and methods below.

    Attributes:
        name: A unique name given to the device.
            It is used as the storage key of the device data.
        clocked_by: The name of the pseudoclock that drives the device, or None if
            the device is a pseudoclock that is not driven by another one.
        clock_rate: The clock of the pseudoclock the device listens to.
    """

    name: DeviceName
    clocked_by: Optional[DeviceName]
    clock_rate: ClockRate

    @abc.abstractmethod
    def get_outputs(self) -> Sequence[Output]:
        """Returns the outputs of the device, with their timelines."""

        raise NotImplementedError

    @abc.abstractmethod
    def expand(self, program: ClockProgram) -> CompiledOutputs:
        """Computes the raw samples of the outputs of the device.

        Most devices can use :func:`expand_device_outputs`.
        """

        raise NotImplementedError

    @abc.abstractmethod
    def validate(self, compiled: CompiledOutputs) -> None:
        """Checks that the device can produce the compiled samples.

        Raises:
            DeviceLimitError: If the samples exceed a limit of the device.
        """

        raise NotImplementedError

    @abc.abstractmethod
    def encode(self, compiled: CompiledOutputs) -> DeviceData:
        """Converts the raw samples to the native format of the device.

        This method must be deterministic and must not clamp values silently.
        """

        raise NotImplementedError


@runtime_checkable
class PseudoclockCompiler(DeviceCompiler, Protocol):
    """A device that produces the clock of other devices."""

    @abc.abstractmethod
    def get_waits(self) -> Timeline:
        """Returns the waits of the pseudoclock.

        The timeline must only contain :class:`Wait` instructions.
        """

        raise NotImplementedError


def get_clocked_timelines(device: DeviceCompiler) -> list[ClockedTimeline]:
    """Returns the timelines of all the channels of a device."""

    return [
        ClockedTimeline(channel.name, channel.timeline, device.clock_rate, device.name)
        for output in device.get_outputs()
        for channel in output.channels()
    ]


def expand_device_outputs(
    device: DeviceCompiler, program: ClockProgram
) -> CompiledOutputs:
    """Expands all the outputs of a device on a clock program.

    Raises:
        NamespaceCollisionError: If two channels of the device have the same name.
    """

    samples = {}
    for output in device.get_outputs():
        expanded = expand_output(output, program, device.clock_rate, device.name)
        if not isinstance(expanded, Mapping):
            expanded = {output.name: expanded}
        for channel, values in expanded.items():
            if channel in samples:
                raise NamespaceCollisionError(
                    fmt(
                        "{:device} has several channels named {:output}",
                        device.name,
                        channel,
                    ),
                    device=device.name,
                    output=channel,
                )
            samples[channel] = values
    logger.debug(
        "Expanded %d channels of %s on %d ticks",
        len(samples),
        device.name,
        program.number_of_ticks(device.clock_rate),
    )
    return CompiledOutputs(device.name, program, device.clock_rate, samples)

from __future__ import annotations

import pytest

from pseudoclock.device import DeviceRegistry, DeviceName
from pseudoclock.device_library import (
    PulseGenerator,
    AnalogCard,
    DigitalCard,
    DDSCard,
)
from pseudoclock.instructions import Timeline, Constant, Ramp, Wait
from pseudoclock.instructions.functions import Linear
from pseudoclock.outputs import AnalogOutput, DigitalOutput, CompositeOutput


@pytest.fixture
def ramp_timeline() -> Timeline:
    """Holds 0, ramps from 0 to 1 between 1 ms and 2 ms at 1 MHz, then holds 1."""

    return Timeline(
        [
            Constant(0.0, 0.0),
            Ramp(1e-3, 1e-3, Linear(0.0, 1.0), 1e6),
            Constant(2e-3, 1.0),
        ]
    )


@pytest.fixture
def trigger_wait() -> Timeline:
    return Timeline([Wait(1e-3, "trigger")])


@pytest.fixture
def pulse_generator(trigger_wait) -> PulseGenerator:
    return PulseGenerator(
        DeviceName("pulseblaster"),
        flags={
            2: DigitalOutput(
                "shutter",
                [Constant(0.0, 0.0), Constant(1e-3, 1.0), Constant(2e-3, 0.0)],
            )
        },
        waits=trigger_wait,
    )


@pytest.fixture
def analog_card(ramp_timeline) -> AnalogCard:
    return AnalogCard(
        DeviceName("ao"),
        clocked_by=DeviceName("pulseblaster"),
        outputs=[
            AnalogOutput("A", ramp_timeline, limits=(-1.0, 2.0)),
            AnalogOutput("B", [Constant(0.0, -10.0), Constant(2e-3, 10.0)]),
        ],
    )


@pytest.fixture
def digital_card() -> DigitalCard:
    return DigitalCard(
        DeviceName("do"),
        clocked_by=DeviceName("pulseblaster"),
        lines={
            0: DigitalOutput("camera", [Constant(0.0, 1.0), Constant(0.5e-3, 0.0)]),
            3: DigitalOutput("repump", [Constant(0.0, 0.0), Constant(2e-3, 1.0)]),
        },
        port_width=8,
    )


@pytest.fixture
def dds_card() -> DDSCard:
    return DDSCard(
        DeviceName("dds"),
        clocked_by=DeviceName("pulseblaster"),
        outputs=[
            CompositeOutput(
                "dds0",
                frequency=[Constant(0.0, 80e6), Constant(2e-3, 81e6)],
                amplitude=[Constant(0.0, 0.5)],
                phase=[Constant(0.0, 90.0)],
            )
        ],
    )


@pytest.fixture
def registry(pulse_generator, analog_card, digital_card, dds_card) -> DeviceRegistry:
    return DeviceRegistry([pulse_generator, analog_card, digital_card, dds_card])

import attrs
import numpy as np
import pytest

from pseudoclock.clock import ClockRate, compile_clock
from pseudoclock.device import (
    DeviceName,
    DeviceRegistry,
    get_clocked_timelines,
)
from pseudoclock.device_library import OpCode, pulse_program_dtype, register_dtype
from pseudoclock.instructions import Constant, Timeline
from pseudoclock.outputs import AnalogOutput, CompositeOutput, DigitalOutput
from pseudoclock.shot_compilation import CompilationContext, compile_shot
from pseudoclock.types import DeviceLimitError, NamespaceCollisionError


@pytest.fixture
def shot(registry):
    return compile_shot(CompilationContext(registry, 3e-3))


def test_pulse_program(shot):
    pulse_program = shot.device_data["pulseblaster"].datasets["PULSE_PROGRAM"]

    assert pulse_program.dtype == pulse_program_dtype
    assert pulse_program["opcode"].tolist() == [
        OpCode.LOOP,
        OpCode.END_LOOP,
        OpCode.WAIT,
        OpCode.LOOP,
        OpCode.END_LOOP,
        OpCode.LOOP,
        OpCode.END_LOOP,
        OpCode.LOOP,
        OpCode.END_LOOP,
        OpCode.STOP,
    ]
    loops = pulse_program[pulse_program["opcode"] == OpCode.LOOP]
    end_loops = pulse_program[pulse_program["opcode"] == OpCode.END_LOOP]
    # The fast clock is on flag 0, the slow clock on flag 1 and the shutter on flag 2.
    assert loops["flags"].tolist() == [0b011, 0b111, 0b101, 0b011]
    assert loops["data"].tolist() == [2, 1, 999, 1]
    assert loops["delay"] == pytest.approx([0.25e-3, 0.5e-6, 0.5e-6, 0.5e-3])
    assert end_loops["data"].tolist() == [0, 3, 5, 7]
    assert end_loops["flags"].tolist() == [0b000, 0b100, 0b100, 0b000]


def test_pulse_generator_waits(shot):
    data = shot.device_data["pulseblaster"]

    assert data.datasets["waits"]["name"].tolist() == [b"trigger"]
    assert data.datasets["waits"]["time"].tolist() == [1e-3]
    assert data.datasets["clock"]["wait"].tolist() == [False, True, False, False, False]
    assert data.attributes["duration"] == pytest.approx(3e-3)
    assert data.attributes["wait_resumption"] == "scheduled"


def test_flag_change_within_record(pulse_generator):
    pulse_generator = attrs.evolve(pulse_generator, waits=Timeline())
    program = compile_clock(get_clocked_timelines(pulse_generator), 3e-3)
    compiled = pulse_generator.expand(program)

    pulse_program = pulse_generator.encode(compiled).datasets["PULSE_PROGRAM"]

    assert len(program) == 1
    loops = pulse_program[pulse_program["opcode"] == OpCode.LOOP]
    assert loops["flags"].tolist() == [0b011, 0b111, 0b011]
    assert loops["data"].tolist() == [1, 1, 1]


def test_too_many_loop_repetitions(registry, pulse_generator):
    devices = [
        attrs.evolve(pulse_generator, max_loop_repetitions=500)
        if device is pulse_generator
        else device
        for device in registry
    ]

    with pytest.raises(DeviceLimitError) as exc_info:
        compile_shot(CompilationContext(DeviceRegistry(devices), 3e-3))

    assert exc_info.value.device == "pulseblaster"


def test_flag_used_by_clock(pulse_generator):
    pulse_generator = attrs.evolve(
        pulse_generator,
        flags={0: DigitalOutput("shutter", [Constant(0.0, 1.0)])},
        waits=Timeline(),
    )
    program = compile_clock(get_clocked_timelines(pulse_generator), 1e-3)

    with pytest.raises(NamespaceCollisionError):
        pulse_generator.validate(pulse_generator.expand(program))


def test_analog_codes(shot):
    data = shot.device_data["ao"]
    codes = data.datasets["ANALOG_OUTS"]

    assert codes.dtype == np.uint16
    assert codes.shape == (1003, 2)
    assert codes[0].tolist() == [32768, 0]
    assert codes[-1, 1] == 65535
    assert data.datasets["channels"].tolist() == [b"A", b"B"]
    assert shot.raw_samples(DeviceName("ao"))["A"][-1] == 1.0


def test_analog_value_outside_card_range(analog_card):
    card = attrs.evolve(
        analog_card, outputs=[AnalogOutput("A", [Constant(0.0, 20.0)])]
    )
    program = compile_clock(get_clocked_timelines(card), 1e-3)

    with pytest.raises(DeviceLimitError) as exc_info:
        card.validate(card.expand(program))

    assert exc_info.value.output == "A"
    assert exc_info.value.time == 0.0


def test_analog_channels_must_be_unique(analog_card):
    card = attrs.evolve(
        analog_card, outputs=[AnalogOutput("A", []), AnalogOutput("A", [])]
    )
    program = compile_clock(get_clocked_timelines(card), 1e-3)

    with pytest.raises(NamespaceCollisionError):
        card.expand(program)


def test_digital_ports(shot):
    port = shot.device_data["do"].datasets["port0"]

    assert port.dtype == np.uint8
    assert len(port) == 1003
    assert port[0] == 0b0001
    assert port[1] == 0
    assert np.all(port[2:-1] == 0)
    assert port[-1] == 0b1000


def test_digital_line_out_of_range(digital_card):
    card = attrs.evolve(
        digital_card, lines={8: DigitalOutput("camera", [Constant(0.0, 1.0)])}
    )
    program = compile_clock(get_clocked_timelines(card), 1e-3)

    with pytest.raises(DeviceLimitError):
        card.validate(card.expand(program))


def test_dds_registers(shot):
    data = shot.device_data["dds"]
    registers = data.datasets["dds0"]

    assert registers.dtype == register_dtype
    assert len(registers) == shot.programs["pulseblaster"].number_of_ticks(
        ClockRate.SLOW
    )
    assert data.datasets["registers/dds0"][0] == b"147AE148 2000 4000"
    assert registers["gate"].all()
    assert registers["frequency"][-1] == round(81e6 * 2**32 / 1e9)


def test_dds_frequency_above_nyquist(dds_card):
    card = attrs.evolve(
        dds_card,
        outputs=[
            CompositeOutput(
                "dds0",
                frequency=[Constant(0.0, 600e6)],
                amplitude=[Constant(0.0, 1.0)],
                phase=[],
            )
        ],
    )
    program = compile_clock(get_clocked_timelines(card), 1e-3)

    with pytest.raises(DeviceLimitError) as exc_info:
        card.validate(card.expand(program))

    assert exc_info.value.output == "dds0.frequency"

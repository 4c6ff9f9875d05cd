import attrs
import numpy as np
import pytest

from pseudoclock.device import DeviceName, DeviceRegistry, HDF5Storage, MemoryStorage
from pseudoclock.instructions import Constant, Ramp
from pseudoclock.instructions.functions import Linear
from pseudoclock.outputs import AnalogOutput, CompositeOutput
from pseudoclock.settings import CompilerSettings, WaitResumption
from pseudoclock.shot_compilation._compiler import _clock_of
from pseudoclock.shot_compilation import (
    CompilationContext,
    compile_and_store,
    compile_shot,
)
from pseudoclock.types import (
    DeviceLimitError,
    NamespaceCollisionError,
    TimelineConflictError,
)


def assert_same_data(first, second):
    assert list(first.device_data) == list(second.device_data)
    for name, data in first.device_data.items():
        other = second.device_data[name]
        assert list(data.datasets) == list(other.datasets)
        for key, array in data.datasets.items():
            assert np.array_equal(array, other.datasets[key])
        assert data.attributes == other.attributes


def test_compile_shot(registry):
    shot = compile_shot(CompilationContext(registry, 3e-3))

    assert list(shot.programs) == ["pulseblaster"]
    assert list(shot.device_data) == ["pulseblaster", "ao", "do", "dds"]
    assert shot.outputs[DeviceName("ao")].number_of_ticks == 1003
    assert shot.outputs[DeviceName("dds")].number_of_ticks == 4
    assert "raw/A" in shot.device_data["ao"].datasets
    assert "raw/dds0.frequency" in shot.device_data["dds"].datasets


def test_compilation_is_deterministic(registry):
    context = CompilationContext(registry, 3e-3)

    assert_same_data(compile_shot(context), compile_shot(context))


def test_parallel_compilation(registry):
    sequential = compile_shot(CompilationContext(registry, 3e-3))
    parallel = compile_shot(
        CompilationContext(registry, 3e-3, CompilerSettings(max_workers=4))
    )

    assert_same_data(sequential, parallel)


def test_raw_outputs_are_optional(registry):
    settings = CompilerSettings(store_raw_outputs=False)
    shot = compile_shot(CompilationContext(registry, 3e-3, settings))

    for data in shot.device_data.values():
        assert not any(key.startswith("raw/") for key in data.datasets)


def test_triggered_wait_resumption(registry):
    settings = CompilerSettings(wait_resumption=WaitResumption.TRIGGERED)
    shot = compile_shot(CompilationContext(registry, 3e-3, settings))

    program = shot.programs["pulseblaster"]
    assert program.wait_resumption is WaitResumption.TRIGGERED
    assert [epoch.stop_time for epoch in program.epochs()] == pytest.approx(
        [1e-3, 2e-3]
    )
    assert shot.device_data["pulseblaster"].attributes["wait_resumption"] == (
        "triggered"
    )


def test_duplicate_device_names(tmp_path, pulse_generator, analog_card, digital_card):
    registry = DeviceRegistry(
        [
            pulse_generator,
            attrs.evolve(analog_card, name=DeviceName("board1")),
            attrs.evolve(digital_card, name=DeviceName("board1")),
        ]
    )
    context = CompilationContext(registry, 3e-3)
    memory = MemoryStorage()
    path = tmp_path / "shot.h5"

    with pytest.raises(NamespaceCollisionError) as exc_info:
        compile_and_store(context, memory)
    assert exc_info.value.device == "board1"

    with pytest.raises(NamespaceCollisionError):
        compile_and_store(context, HDF5Storage(path))

    assert memory.devices == {}
    assert not path.exists()


def test_failing_device_stores_nothing(registry, dds_card, tmp_path):
    invalid = attrs.evolve(
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
    devices = [invalid if device is dds_card else device for device in registry]
    context = CompilationContext(DeviceRegistry(devices), 3e-3)
    storage = HDF5Storage(tmp_path / "shot.h5")

    with pytest.raises(DeviceLimitError) as exc_info:
        compile_and_store(context, storage)

    assert exc_info.value.device == "dds"
    assert "While compiling device 'dds'" in exc_info.value.__notes__
    assert storage.stored_devices() == []
    assert list(tmp_path.iterdir()) == []


def test_parallel_failure_is_reported(registry, dds_card):
    invalid = attrs.evolve(
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
    devices = [invalid if device is dds_card else device for device in registry]
    settings = CompilerSettings(max_workers=4)

    with pytest.raises(DeviceLimitError):
        compile_shot(CompilationContext(DeviceRegistry(devices), 3e-3, settings))


def test_clock_conflict_names_the_clock(registry, analog_card):
    conflicting = attrs.evolve(
        analog_card,
        outputs=[
            AnalogOutput("C", [Ramp(1.5e-3, 1e-3, Linear(0.0, 1.0), 3e5)]),
        ],
    )
    devices = [conflicting if device is analog_card else device for device in registry]

    with pytest.raises(TimelineConflictError) as exc_info:
        compile_shot(CompilationContext(DeviceRegistry(devices), 3e-3))

    assert "While compiling the clock of device 'pulseblaster'" in (
        exc_info.value.__notes__
    )


def test_shot_after_storage(registry, tmp_path):
    storage = HDF5Storage(tmp_path / "shot.h5")

    shot = compile_and_store(CompilationContext(registry, 3e-3), storage)

    assert storage.stored_devices() == sorted(shot.device_data)
    pulse_program = storage.read_device(DeviceName("pulseblaster")).datasets[
        "PULSE_PROGRAM"
    ]
    assert np.array_equal(
        pulse_program, shot.device_data["pulseblaster"].datasets["PULSE_PROGRAM"]
    )


def test_invalid_context(registry):
    with pytest.raises(ValueError):
        CompilationContext(registry, 0.0)
    with pytest.raises(TypeError):
        CompilationContext([], 1.0)


def test_device_without_pseudoclock(analog_card):
    device = attrs.evolve(analog_card, clocked_by=None)

    with pytest.raises(TimelineConflictError) as exc_info:
        _clock_of(device)

    assert exc_info.value.device == "ao"

import json

import numpy as np
import pytest

from pseudoclock.clock import (
    ClockProgram,
    ClockRate,
    TickRecord,
    WaitMarker,
    program_from_array,
    program_to_array,
    record_dtype,
    structure_program,
    unstructure_program,
)
from pseudoclock.settings import WaitResumption


@pytest.fixture
def program() -> ClockProgram:
    return ClockProgram(
        [
            TickRecord(1e-3, 1, True, origin_time=0.0),
            WaitMarker("trigger", time=1e-3, timeout=2.0),
            TickRecord(1e-6, 1, True, origin_time=1e-3),
            TickRecord(1e-6, 999, False, origin_time=1.001e-3),
            TickRecord(1e-3, 1, True),
        ]
    )


def test_tick_period_must_be_positive():
    with pytest.raises(ValueError):
        TickRecord(0.0, 1, True)


def test_tick_repetitions_must_be_positive():
    with pytest.raises(ValueError):
        TickRecord(1e-6, 0, True)


def test_origin_time_is_not_compared():
    assert TickRecord(1e-6, 3, False, origin_time=1.0) == TickRecord(1e-6, 3, False)
    assert WaitMarker("trigger", time=1.0) == WaitMarker("trigger")


def test_program_rejects_other_records():
    with pytest.raises(TypeError):
        ClockProgram([TickRecord(1e-6, 1, True), 1e-6])


def test_number_of_ticks(program):
    assert len(program) == 5
    assert program.number_of_ticks(ClockRate.FAST) == 1002
    assert program.number_of_ticks(ClockRate.SLOW) == 3
    assert program.duration == pytest.approx(3e-3)
    assert program.waits == [WaitMarker("trigger")]


def test_tick_times(program):
    fast = program.tick_times(ClockRate.FAST)
    slow = program.tick_times(ClockRate.SLOW)

    assert len(fast) == 1002
    assert fast[:3] == pytest.approx([0.0, 1e-3, 1.001e-3])
    assert fast[-1] == pytest.approx(2e-3)
    assert slow == pytest.approx([0.0, 1e-3, 2e-3])


def test_minimum_interval(program):
    assert program.minimum_interval(ClockRate.FAST) == pytest.approx(1e-6)
    assert program.minimum_interval(ClockRate.SLOW) == pytest.approx(1e-3)


def test_minimum_interval_includes_end_of_program():
    program = ClockProgram([TickRecord(1e-3, 1, True), TickRecord(1e-6, 1, True)])

    assert program.minimum_interval() == pytest.approx(1e-6)


def test_minimum_interval_without_ticks():
    program = ClockProgram([TickRecord(1e-6, 3, False)])

    assert program.minimum_interval(ClockRate.SLOW) is None


def test_epochs_without_waits():
    program = ClockProgram([TickRecord(1e-3, 2, True)])

    (epoch,) = program.epochs()

    assert epoch.index == 0
    assert epoch.wait is None
    assert epoch.duration == pytest.approx(2e-3)
    assert epoch.number_of_ticks == 2


def test_blocks_are_in_time_units(program):
    blocks = list(program.iter_blocks(ClockRate.SLOW))

    assert [block.start for block in blocks] == [0, 10_000_000, 20_000_000]
    assert blocks[-1].stop == 30_000_000


def test_array_round_trip(program):
    array = program_to_array(program)

    assert array.dtype == record_dtype
    assert array["wait"].tolist() == [False, True, False, False, False]
    assert np.isnan(array["origin_time"][-1])

    loaded = program_from_array(array)
    assert loaded == program
    assert loaded[1].time == 1e-3
    assert loaded[1].timeout == 2.0
    assert loaded[2].origin_time == 1e-3
    assert loaded[-1].origin_time is None


def test_unstructure_program(program):
    program = ClockProgram(
        program.records, wait_resumption=WaitResumption.TRIGGERED
    )

    data = unstructure_program(program)
    loaded = structure_program(json.loads(json.dumps(data)))

    assert data["wait_resumption"] == "triggered"
    assert [record["type"] for record in data["records"]] == [
        "TickRecord",
        "WaitMarker",
        "TickRecord",
        "TickRecord",
        "TickRecord",
    ]
    assert loaded == program
    assert loaded.wait_resumption is WaitResumption.TRIGGERED

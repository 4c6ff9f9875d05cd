from __future__ import annotations

import enum
import logging
from collections.abc import Mapping, Sequence
from typing import Optional

import attrs
import numpy as np

from ..bitfield import pack_bits
from ..clock import ClockProgram, ClockRate, WaitMarker, program_to_array
from ..device import (
    CompiledOutputs,
    DeviceData,
    DeviceName,
    expand_device_outputs,
)
from ..device.validators import check_minimum_interval
from ..formatter import fmt
from ..instructions import Timeline
from ..outputs import DigitalOutput
from ..types.exceptions import DeviceLimitError, NamespaceCollisionError

logger = logging.getLogger(__name__)


class OpCode(enum.IntEnum):
    CONTINUE = 0
    STOP = 1
    LOOP = 2
    END_LOOP = 3
    WAIT = 8


pulse_program_dtype = np.dtype(
    [
        ("flags", np.uint32),
        ("opcode", np.uint8),
        ("data", np.uint32),
        ("delay", np.float64),
    ]
)
"""Layout of an instruction of the pulse program.

The delay is the duration of the instruction in seconds.
For a `LOOP` instruction, data is the number of repetitions, for an `END_LOOP`
instruction it is the index of the matching `LOOP` instruction.
"""

wait_dtype = np.dtype(
    [("name", "S64"), ("time", np.float64), ("timeout", np.float64)]
)


def _to_flags(value: Mapping[int, DigitalOutput]) -> dict[int, DigitalOutput]:
    return dict(sorted(value.items()))


@attrs.frozen
class PulseGenerator:
    """A pseudoclock that outputs its clock on digital flags.

    Each tick record of the clock program is played as a `LOOP` and `END_LOOP` pair.
    The clock flags are high during the first half of each tick, and low during the
    second half.
    The fast clock flag ticks at every tick, the slow clock flag only at the
    dual-rate ticks.

    The other flags can be used as direct digital outputs.
    They are clocked by the fast clock of the pulse generator itself.

    Attributes:
        name: The name of the device.
        flags: The direct digital outputs, indexed by flag number.
        waits: The waits of the pulse generator.
        n_flags: The number of flags of the device.
        fast_clock_flag: The flag on which the fast clock is output, if any.
        slow_clock_flag: The flag on which the slow clock is output, if any.
        min_delay: The shortest duration of an instruction, in seconds.
        max_delay: The longest duration of an instruction, in seconds.
        max_loop_repetitions: The maximum number of iterations of a loop.
        max_instructions: The maximum number of instructions of the pulse program.
        wait_delay: The duration of a `WAIT` instruction, in seconds.
    """

    name: DeviceName
    flags: dict[int, DigitalOutput] = attrs.field(factory=dict, converter=_to_flags)
    waits: Timeline = attrs.field(factory=Timeline)
    n_flags: int = attrs.field(default=24, validator=attrs.validators.le(32))
    fast_clock_flag: Optional[int] = 0
    slow_clock_flag: Optional[int] = 1
    min_delay: float = 50e-9
    max_delay: float = 55.0
    max_loop_repetitions: int = 1048576
    max_instructions: int = 4096
    wait_delay: float = 100e-9

    clocked_by: Optional[DeviceName] = attrs.field(default=None, init=False)
    clock_rate: ClockRate = attrs.field(default=ClockRate.FAST, init=False)

    def get_outputs(self) -> Sequence[DigitalOutput]:
        return list(self.flags.values())

    def get_waits(self) -> Timeline:
        return self.waits

    def expand(self, program: ClockProgram) -> CompiledOutputs:
        return expand_device_outputs(self, program)

    def validate(self, compiled: CompiledOutputs) -> None:
        clock_flags = {self.fast_clock_flag, self.slow_clock_flag} - {None}
        for flag, output in self.flags.items():
            if not 0 <= flag < self.n_flags:
                raise DeviceLimitError(
                    fmt(
                        "{:output} is connected to flag {}, but {:device} only has {} "
                        "flags",
                        output.name,
                        flag,
                        self.name,
                        self.n_flags,
                    ),
                    device=self.name,
                    output=output.name,
                )
            if flag in clock_flags:
                raise NamespaceCollisionError(
                    fmt(
                        "{:output} is connected to flag {}, which outputs the clock of "
                        "{:device}",
                        output.name,
                        flag,
                        self.name,
                    ),
                    device=self.name,
                    output=output.name,
                )
        check_minimum_interval(compiled, 2 * self.min_delay)
        for record in compiled.program.tick_records:
            half_period = record.period / 2
            if half_period > self.max_delay:
                raise DeviceLimitError(
                    fmt(
                        "{:device} can't tick every {:duration} at {:time}, the "
                        "longest instruction is {:duration}",
                        self.name,
                        record.period,
                        record.origin_time,
                        2 * self.max_delay,
                    ),
                    device=self.name,
                    time=record.origin_time,
                )
            if record.repetitions > self.max_loop_repetitions:
                raise DeviceLimitError(
                    fmt(
                        "{:device} can't repeat a loop {} times at {:time}, the "
                        "maximum is {}",
                        self.name,
                        record.repetitions,
                        record.origin_time,
                        self.max_loop_repetitions,
                    ),
                    device=self.name,
                    time=record.origin_time,
                )
        length = len(self._pulse_program(compiled))
        if length > self.max_instructions:
            raise DeviceLimitError(
                fmt(
                    "The pulse program of {:device} has {} instructions, but the "
                    "device can only store {}",
                    self.name,
                    length,
                    self.max_instructions,
                ),
                device=self.name,
            )

    def encode(self, compiled: CompiledOutputs) -> DeviceData:
        program = compiled.program
        waits = np.array(
            [
                (wait.name.encode("utf-8"), wait.time, wait.timeout)
                for wait in program.waits
            ],
            dtype=wait_dtype,
        )
        return DeviceData(
            datasets={
                "PULSE_PROGRAM": self._pulse_program(compiled),
                "clock": program_to_array(program),
                "waits": waits,
            },
            attributes={
                "n_flags": self.n_flags,
                "fast_clock_flag": _flag_attribute(self.fast_clock_flag),
                "slow_clock_flag": _flag_attribute(self.slow_clock_flag),
                "time_resolution": program.time_resolution,
                "wait_resumption": program.wait_resumption.value,
                "duration": program.duration,
            },
        )

    def _pulse_program(self, compiled: CompiledOutputs) -> np.ndarray:
        words = self._flag_words(compiled)
        fast = 0 if self.fast_clock_flag is None else 1 << self.fast_clock_flag
        slow = 0 if self.slow_clock_flag is None else 1 << self.slow_clock_flag

        instructions: list[tuple[int, int, int, float]] = []
        tick = 0
        word = 0
        for record in compiled.program:
            if isinstance(record, WaitMarker):
                instructions.append((word, OpCode.WAIT, 0, self.wait_delay))
                continue
            period = record.period
            clock = fast | (slow if record.dual_rate else 0)
            record_words = words[tick : tick + record.repetitions]
            for start, stop in _runs(record_words):
                word = int(record_words[start])
                loop = len(instructions)
                instructions.append(
                    (word | clock, OpCode.LOOP, stop - start, period / 2)
                )
                instructions.append((word, OpCode.END_LOOP, loop, period / 2))
            tick += record.repetitions
        instructions.append((word, OpCode.STOP, 0, self.min_delay))
        logger.debug(
            "Pulse program of %s has %d instructions for %d ticks",
            self.name,
            len(instructions),
            tick,
        )
        return np.array(instructions, dtype=pulse_program_dtype)

    def _flag_words(self, compiled: CompiledOutputs) -> np.ndarray:
        ticks = compiled.number_of_ticks
        if not self.flags:
            return np.zeros(ticks, dtype=np.uint32)
        return pack_bits(
            {flag: compiled[output.name] for flag, output in self.flags.items()},
            np.uint32,
        )


def _runs(words: np.ndarray) -> list[tuple[int, int]]:
    """Splits an array into runs of equal values.

    Returns:
        The start and stop index of each run.
    """

    if len(words) == 0:
        return []
    changes = np.flatnonzero(words[1:] != words[:-1]) + 1
    bounds = [0, *changes.tolist(), len(words)]
    return list(zip(bounds[:-1], bounds[1:]))


def _flag_attribute(flag: Optional[int]) -> int:
    return -1 if flag is None else flag

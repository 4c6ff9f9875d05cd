from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Sequence
from typing import overload

import attrs

from ._instructions import Constant, Ramp, Wait, Instruction
from ..formatter import fmt
from ..types.exceptions import TimelineConflictError


def _sorted_instructions(
    instructions: Iterable[Instruction],
) -> tuple[Instruction, ...]:
    instructions = tuple(instructions)
    for instruction in instructions:
        if not isinstance(instruction, (Constant, Ramp, Wait)):
            raise TypeError(f"Expected an instruction, got {instruction!r}")
    return tuple(sorted(instructions, key=lambda instruction: instruction.time))


def _ends_after(ramp: Ramp, time: float) -> bool:
    # Rounding of `time + duration` is left to the integer check of the clock.
    return ramp.end > time and not math.isclose(ramp.end, time)


def _check_no_overlap(instance: Timeline, attribute, value: tuple[Instruction, ...]):
    for previous, current in zip(value, value[1:]):
        if current.time == previous.time:
            raise TimelineConflictError(
                fmt(
                    "Two instructions are scheduled at {:time}: {} and {}",
                    current.time,
                    previous,
                    current,
                ),
                time=current.time,
            )
        if isinstance(previous, Ramp) and _ends_after(previous, current.time):
            raise TimelineConflictError(
                fmt(
                    "{} overlaps with the next instruction {}",
                    previous,
                    current,
                ),
                time=current.time,
            )


@attrs.frozen
class Timeline(Sequence[Instruction]):
    """An ordered sequence of instructions for a single output.

    The instructions are sorted by time when the timeline is created.
    No two instructions can be scheduled at the same time and a ramp must be over
    before the next instruction starts.

    Raises:
        TimelineConflictError: If the instructions overlap.
    """

    instructions: tuple[Instruction, ...] = attrs.field(
        factory=tuple, converter=_sorted_instructions, validator=_check_no_overlap
    )

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    @overload
    def __getitem__(self, item: int) -> Instruction: ...

    @overload
    def __getitem__(self, item: slice) -> Timeline: ...

    def __getitem__(self, item):
        if isinstance(item, slice):
            return Timeline(self.instructions[item])
        return self.instructions[item]

    @property
    def times(self) -> tuple[float, ...]:
        """The start time of each instruction."""

        return tuple(instruction.time for instruction in self.instructions)

    def ramps(self) -> list[Ramp]:
        return [
            instruction
            for instruction in self.instructions
            if isinstance(instruction, Ramp)
        ]

    def waits(self) -> list[Wait]:
        return [
            instruction
            for instruction in self.instructions
            if isinstance(instruction, Wait)
        ]

    def end_time(self) -> float:
        """Returns the time at which the last instruction is over.

        An empty timeline ends at 0.
        """

        if not self.instructions:
            return 0.0
        last = self.instructions[-1]
        if isinstance(last, Ramp):
            return last.end
        return last.time

    def __add__(self, other: Timeline | Iterable[Instruction]) -> Timeline:
        return Timeline([*self.instructions, *other])

    def __str__(self) -> str:
        return "[" + ", ".join(str(instruction) for instruction in self) + "]"

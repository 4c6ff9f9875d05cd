from __future__ import annotations

import enum
from collections.abc import Iterator, Sequence
from typing import Optional, overload

import attrs
import numpy as np

from ..settings import WaitResumption
from ..timing import DEFAULT_TIME_RESOLUTION, units_per_second, to_units


class ClockRate(enum.Enum):
    """The clock of a pseudoclock that a device listens to.

    The fast clock ticks at every tick of the clock program.
    The slow clock only ticks at dual-rate ticks, that are the ticks where at least one
    output changes its instruction.
    Outputs on the slow clock can't ramp.
    """

    FAST = "fast"
    SLOW = "slow"


@attrs.frozen
class TickRecord:
    """A run of identical clock ticks.

    Attributes:
        period: Duration of each tick in seconds.
        repetitions: Number of consecutive ticks with this period.
        dual_rate: Whether both the fast and the slow clocks tick, or only the fast
            clock.
        origin_time: Time in seconds of the first tick of the run.
            It is informational only, used to make error messages readable, and does
            not take part in comparisons.
    """

    period: float = attrs.field(converter=float)
    repetitions: int = attrs.field(validator=attrs.validators.ge(1))
    dual_rate: bool = attrs.field(converter=bool)
    origin_time: Optional[float] = attrs.field(default=None, eq=False)

    @period.validator
    def _check_period(self, attribute, value):
        if not value > 0:
            raise ValueError(f"Tick period must be positive, got {value}")

    @property
    def duration(self) -> float:
        return self.period * self.repetitions

    def __str__(self) -> str:
        kind = "dual" if self.dual_rate else "fast"
        return f"{self.repetitions} x {self.period:.10g} s ({kind})"


@attrs.frozen
class WaitMarker:
    """Marks that the clock halts until an external trigger is received.

    Attributes:
        name: The name of the wait.
        time: The scheduled time of the wait in seconds.
        timeout: Maximum time to wait for the trigger, in seconds.
    """

    name: str
    time: float = attrs.field(default=0.0, eq=False)
    timeout: float = attrs.field(default=5.0, eq=False)

    def __str__(self) -> str:
        return f"WAIT {self.name}"


type ClockRecord = TickRecord | WaitMarker


@attrs.frozen
class TickBlock:
    """A tick record expressed in integer time units.

    Attributes:
        start: Time of the first tick of the block.
        period: Duration of each tick.
        repetitions: Number of ticks in the block.
        dual_rate: Whether the slow clock ticks too.
    """

    start: int
    period: int
    repetitions: int
    dual_rate: bool

    @property
    def stop(self) -> int:
        return self.start + self.period * self.repetitions

    def times(self) -> np.ndarray:
        """Returns the time of each tick of the block, in time units."""

        return self.start + np.arange(self.repetitions, dtype=np.int64) * self.period


@attrs.frozen
class Epoch:
    """A maximal run of ticks between two waits, or the start or the end of a shot.

    Attributes:
        index: Position of the epoch in the shot, starting at 0.
        start_time: Time of the first tick of the epoch in seconds.
        stop_time: Time at which the last tick of the epoch is over, in seconds.
        number_of_ticks: Number of fast clock ticks in the epoch.
        wait: The wait that precedes the epoch, or None for the first epoch.
    """

    index: int
    start_time: float
    stop_time: float
    number_of_ticks: int
    wait: Optional[WaitMarker] = None

    @property
    def duration(self) -> float:
        return self.stop_time - self.start_time


def _to_records(records) -> tuple[ClockRecord, ...]:
    return tuple(records)


@attrs.frozen
class ClockProgram(Sequence[ClockRecord]):
    """The compiled clock signal of a pseudoclock.

    A clock program is an ordered sequence of :class:`TickRecord` and
    :class:`WaitMarker`.
    Expanding the tick records into individual ticks gives a tick at every time where
    an output of the pseudoclock changes instruction, plus the samples of the ramps.

    Attributes:
        records: The tick records and wait markers.
        time_resolution: Duration in seconds of the time step the periods are
            multiples of.
        wait_resumption: How times after a wait are referenced.
    """

    records: tuple[ClockRecord, ...] = attrs.field(converter=_to_records)
    time_resolution: float = DEFAULT_TIME_RESOLUTION
    wait_resumption: WaitResumption = WaitResumption.SCHEDULED

    _blocks: tuple[Optional[TickBlock], ...] = attrs.field(
        init=False, eq=False, repr=False
    )

    def __attrs_post_init__(self):
        scale = units_per_second(self.time_resolution)
        blocks = []
        start = 0
        for record in self.records:
            if isinstance(record, TickRecord):
                period = to_units(record.period, scale)
                blocks.append(
                    TickBlock(start, period, record.repetitions, record.dual_rate)
                )
                start += period * record.repetitions
            elif isinstance(record, WaitMarker):
                blocks.append(None)
            else:
                raise TypeError(f"Expected a clock record, got {record!r}")
        object.__setattr__(self, "_blocks", tuple(blocks))

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ClockRecord]:
        return iter(self.records)

    @overload
    def __getitem__(self, item: int) -> ClockRecord: ...

    @overload
    def __getitem__(self, item: slice) -> tuple[ClockRecord, ...]: ...

    def __getitem__(self, item):
        return self.records[item]

    @property
    def units_per_second(self) -> int:
        return units_per_second(self.time_resolution)

    @property
    def tick_records(self) -> list[TickRecord]:
        return [record for record in self.records if isinstance(record, TickRecord)]

    @property
    def waits(self) -> list[WaitMarker]:
        return [record for record in self.records if isinstance(record, WaitMarker)]

    @property
    def duration(self) -> float:
        """Nominal duration of the program in seconds, excluding waits."""

        total = sum(block.stop - block.start for block in self.iter_blocks())
        return total / self.units_per_second

    def iter_blocks(self, rate: ClockRate = ClockRate.FAST) -> Iterator[TickBlock]:
        """Iterates over the tick records in integer time units.

        Args:
            rate: If the slow clock is requested, only the dual-rate records are
                yielded.
        """

        for block in self._blocks:
            if block is None:
                continue
            if rate is ClockRate.SLOW and not block.dual_rate:
                continue
            yield block

    def number_of_ticks(self, rate: ClockRate = ClockRate.FAST) -> int:
        """Returns the number of ticks of the given clock."""

        return sum(block.repetitions for block in self.iter_blocks(rate))

    def tick_times(self, rate: ClockRate = ClockRate.FAST) -> np.ndarray:
        """Returns the time in seconds of every tick of the given clock.

        Warnings:
            This materializes one value per tick, prefer :meth:`iter_blocks` for long
            programs.
        """

        blocks = [block.times() for block in self.iter_blocks(rate)]
        if not blocks:
            return np.array([], dtype=np.float64)
        return np.concatenate(blocks) / self.units_per_second

    def minimum_interval(self, rate: ClockRate = ClockRate.FAST) -> Optional[float]:
        """Returns the shortest time between two consecutive ticks of a clock.

        The time between the last tick and the end of the program is included.
        For the slow clock, the interval between two dual-rate ticks is the sum of
        the periods of the ticks in between.

        Returns:
            The interval in seconds, or None if the clock never ticks.
        """

        shortest: Optional[int] = None
        since_last: Optional[int] = None
        for block in self._blocks:
            if block is None:
                continue
            if rate is ClockRate.FAST or block.dual_rate:
                if since_last is not None:
                    shortest = _min(shortest, since_last)
                if block.repetitions > 1:
                    shortest = _min(shortest, block.period)
                since_last = block.period
            elif since_last is not None:
                since_last += block.period * block.repetitions
        if since_last is not None:
            shortest = _min(shortest, since_last)
        if shortest is None:
            return None
        return shortest / self.units_per_second

    def epochs(self) -> list[Epoch]:
        """Splits the program at its waits.

        With :attr:`WaitResumption.TRIGGERED`, the times of each epoch are relative
        to its start.
        """

        epochs = []
        wait: Optional[WaitMarker] = None
        start: Optional[int] = None
        stop = 0
        ticks = 0
        for record, block in zip(self.records, self._blocks):
            if block is None:
                assert isinstance(record, WaitMarker)
                epochs.append(self._make_epoch(len(epochs), start, stop, ticks, wait))
                wait = record
                start = None
                ticks = 0
            else:
                if start is None:
                    start = block.start
                stop = block.stop
                ticks += block.repetitions
        epochs.append(self._make_epoch(len(epochs), start, stop, ticks, wait))
        return epochs

    def _make_epoch(
        self,
        index: int,
        start: Optional[int],
        stop: int,
        ticks: int,
        wait: Optional[WaitMarker],
    ) -> Epoch:
        scale = self.units_per_second
        if start is None:
            start = stop
        if self.wait_resumption is WaitResumption.TRIGGERED:
            stop -= start
            start = 0
        return Epoch(index, start / scale, stop / scale, ticks, wait)

    def __str__(self) -> str:
        return "\n".join(str(record) for record in self.records)


def _min(current: Optional[int], value: int) -> int:
    if current is None:
        return value
    return min(current, value)

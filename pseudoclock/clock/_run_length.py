"""Run-length encoding of clock ticks into tick records."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Optional

from ._records import TickRecord, WaitMarker, ClockRecord
from ..settings import WaitResumption
from ..timing import to_seconds

type Tick = tuple[float, bool]
"""A single tick given by its period in seconds and whether it is dual-rate."""


class RecordBuilder:
    """Accumulates ticks into a list of run-length encoded clock records.

    Ticks are given in integer time units.
    Consecutive ticks with the same period and the same dual-rate flag are merged into
    a single :class:`TickRecord`, unless a wait is added between them.

    Args:
        scale: Number of time units in one second.
        wait_resumption: How the origin times of the records following a wait are
            referenced.
    """

    def __init__(
        self,
        scale: int,
        wait_resumption: WaitResumption = WaitResumption.SCHEDULED,
    ):
        self._scale = scale
        self._wait_resumption = wait_resumption
        self._records: list[ClockRecord] = []
        # Pending record, not yet converted to seconds.
        self._period: Optional[int] = None
        self._repetitions = 0
        self._dual_rate = False
        self._origin = 0
        self._epoch_start = 0

    def add_ticks(
        self, start: int, period: int, repetitions: int, dual_rate: bool
    ) -> None:
        """Adds `repetitions` ticks of `period` time units starting at `start`."""

        if repetitions < 1:
            raise ValueError(f"Repetitions must be at least 1, got {repetitions}")
        if period < 1:
            raise ValueError(f"Tick period must be at least 1 unit, got {period}")
        if self._period == period and self._dual_rate == dual_rate:
            self._repetitions += repetitions
            return
        self._flush()
        self._period = period
        self._repetitions = repetitions
        self._dual_rate = dual_rate
        self._origin = start

    def add_wait(self, marker: WaitMarker, time: int) -> None:
        """Adds a wait at `time`, after the last tick added so far."""

        self._flush()
        self._records.append(marker)
        self._epoch_start = time

    def __len__(self) -> int:
        return len(self._records) + (self._period is not None)

    def build(self) -> list[ClockRecord]:
        self._flush()
        return list(self._records)

    def _flush(self) -> None:
        if self._period is None:
            return
        origin = self._origin
        if self._wait_resumption is WaitResumption.TRIGGERED:
            origin -= self._epoch_start
        self._records.append(
            TickRecord(
                period=to_seconds(self._period, self._scale),
                repetitions=self._repetitions,
                dual_rate=self._dual_rate,
                origin_time=to_seconds(origin, self._scale),
            )
        )
        self._period = None
        self._repetitions = 0


def expand_records(records: Iterable[ClockRecord]) -> Iterator[Tick | WaitMarker]:
    """Yields each individual tick of a sequence of clock records.

    Tick records are expanded into `(period, dual_rate)` pairs, one per tick, and wait
    markers are yielded unchanged.
    """

    for record in records:
        if isinstance(record, WaitMarker):
            yield record
        else:
            for _ in range(record.repetitions):
                yield record.period, record.dual_rate


def compress_ticks(ticks: Iterable[Tick | WaitMarker]) -> list[ClockRecord]:
    """Merges consecutive identical ticks into tick records.

    This is the inverse of :func:`expand_records`.
    Ticks are never merged across a wait marker.
    """

    records: list[ClockRecord] = []
    current: Optional[Tick] = None
    count = 0
    for tick in ticks:
        if isinstance(tick, WaitMarker):
            if current is not None:
                records.append(TickRecord(current[0], count, current[1]))
                current = None
            records.append(tick)
            continue
        period, dual_rate = float(tick[0]), bool(tick[1])
        if current == (period, dual_rate):
            count += 1
        else:
            if current is not None:
                records.append(TickRecord(current[0], count, current[1]))
            current = (period, dual_rate)
            count = 1
    if current is not None:
        records.append(TickRecord(current[0], count, current[1]))
    return records

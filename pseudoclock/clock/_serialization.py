"""Conversion of clock programs to the record stream stored with a shot."""

from __future__ import annotations

from typing import Any

import numpy as np

from ._records import ClockProgram, TickRecord, WaitMarker
from ..settings import WaitResumption
from ..timing import DEFAULT_TIME_RESOLUTION
from ..utils import serialization

record_dtype = np.dtype(
    [
        ("period", np.float64),
        ("repetitions", np.uint64),
        ("dual_rate", np.bool_),
        ("wait", np.bool_),
        ("origin_time", np.float64),
        ("name", "S64"),
        ("timeout", np.float64),
    ]
)
"""Layout of a row of the record stream.

Tick records have `wait` set to False.
Wait markers have `wait` set to True, a period and a number of repetitions of 0, and
their scheduled time in `origin_time`.
A tick record without origin time has `origin_time` set to NaN.
"""

serialization.configure_tagged_union(TickRecord | WaitMarker, tag_name="type")


def program_to_array(program: ClockProgram) -> np.ndarray:
    """Converts a clock program to a numpy structured array of dtype
    :data:`record_dtype`."""

    array = np.zeros(len(program), dtype=record_dtype)
    for index, record in enumerate(program):
        if isinstance(record, WaitMarker):
            array[index] = (
                0.0,
                0,
                False,
                True,
                record.time,
                record.name.encode("utf-8"),
                record.timeout,
            )
        else:
            origin = np.nan if record.origin_time is None else record.origin_time
            array[index] = (
                record.period,
                record.repetitions,
                record.dual_rate,
                False,
                origin,
                b"",
                0.0,
            )
    return array


def program_from_array(
    array: np.ndarray,
    time_resolution: float = DEFAULT_TIME_RESOLUTION,
    wait_resumption: WaitResumption = WaitResumption.SCHEDULED,
) -> ClockProgram:
    """Rebuilds a clock program from its record stream."""

    records = []
    for row in array:
        if row["wait"]:
            records.append(
                WaitMarker(
                    name=row["name"].decode("utf-8"),
                    time=float(row["origin_time"]),
                    timeout=float(row["timeout"]),
                )
            )
        else:
            origin = float(row["origin_time"])
            records.append(
                TickRecord(
                    period=float(row["period"]),
                    repetitions=int(row["repetitions"]),
                    dual_rate=bool(row["dual_rate"]),
                    origin_time=None if np.isnan(origin) else origin,
                )
            )
    return ClockProgram(records, time_resolution, wait_resumption)


def unstructure_program(program: ClockProgram) -> dict[str, Any]:
    """Converts a clock program to JSON compatible python objects."""

    converter = serialization.converters["json"]
    return {
        "time_resolution": program.time_resolution,
        "wait_resumption": program.wait_resumption.value,
        "records": converter.unstructure(
            list(program.records), list[TickRecord | WaitMarker]
        ),
    }


def structure_program(data: dict[str, Any]) -> ClockProgram:
    """Rebuilds a clock program from the output of :func:`unstructure_program`."""

    converter = serialization.converters["json"]
    records = converter.structure(data["records"], list[TickRecord | WaitMarker])
    return ClockProgram(
        records,
        float(data["time_resolution"]),
        WaitResumption(data["wait_resumption"]),
    )

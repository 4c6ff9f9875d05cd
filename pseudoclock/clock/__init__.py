"""Compilation of the timelines of a pseudoclock into a run-length encoded clock."""

from ._compiler import ClockedTimeline, compile_clock
from ._records import (
    ClockRate,
    TickRecord,
    WaitMarker,
    ClockRecord,
    TickBlock,
    Epoch,
    ClockProgram,
)
from ._run_length import RecordBuilder, Tick, expand_records, compress_ticks
from ._serialization import (
    record_dtype,
    program_to_array,
    program_from_array,
    unstructure_program,
    structure_program,
)

__all__ = [
    "ClockedTimeline",
    "compile_clock",
    "ClockRate",
    "TickRecord",
    "WaitMarker",
    "ClockRecord",
    "TickBlock",
    "Epoch",
    "ClockProgram",
    "RecordBuilder",
    "Tick",
    "expand_records",
    "compress_ticks",
    "record_dtype",
    "program_to_array",
    "program_from_array",
    "unstructure_program",
    "structure_program",
]

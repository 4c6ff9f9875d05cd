from hypothesis import given
from hypothesis.strategies import (
    booleans,
    builds,
    integers,
    lists,
    one_of,
    sampled_from,
    text,
    tuples,
)

from pseudoclock.clock import (
    RecordBuilder,
    TickRecord,
    WaitMarker,
    compress_ticks,
    expand_records,
)
from pseudoclock.settings import WaitResumption

periods = sampled_from([1e-6, 2e-6, 1e-3])
ticks = tuples(periods, booleans())
waits = builds(WaitMarker, text(min_size=1, max_size=5))


@given(lists(one_of(ticks, waits), max_size=50))
def test_expand_compress_ticks(values):
    assert list(expand_records(compress_ticks(values))) == values


@given(lists(one_of(ticks, waits), max_size=50))
def test_compressed_ticks_are_coalesced(values):
    records = compress_ticks(values)

    for first, second in zip(records, records[1:]):
        if isinstance(first, TickRecord) and isinstance(second, TickRecord):
            assert (first.period, first.dual_rate) != (second.period, second.dual_rate)


@given(
    lists(
        builds(TickRecord, periods, integers(min_value=1, max_value=20), booleans()),
        max_size=10,
    )
)
def test_compress_expanded_records(records):
    expected = []
    for record in records:
        if (
            expected
            and expected[-1].period == record.period
            and expected[-1].dual_rate == record.dual_rate
        ):
            previous = expected.pop()
            record = TickRecord(
                record.period,
                previous.repetitions + record.repetitions,
                record.dual_rate,
            )
        expected.append(record)

    assert compress_ticks(expand_records(records)) == expected


def test_builder_merges_identical_ticks():
    builder = RecordBuilder(scale=10**6)
    builder.add_ticks(0, 1, 1, True)
    builder.add_ticks(1, 1, 3, True)
    builder.add_ticks(4, 2, 1, False)

    records = builder.build()

    assert records == [TickRecord(1e-6, 4, True), TickRecord(2e-6, 1, False)]
    assert records[0].origin_time == 0.0
    assert records[1].origin_time == 4e-6


def test_builder_does_not_merge_across_waits():
    builder = RecordBuilder(scale=10**6)
    builder.add_ticks(0, 1, 2, True)
    builder.add_wait(WaitMarker("trigger", 2e-6), 2)
    builder.add_ticks(2, 1, 2, True)

    assert builder.build() == [
        TickRecord(1e-6, 2, True),
        WaitMarker("trigger"),
        TickRecord(1e-6, 2, True),
    ]


def test_builder_triggered_origins():
    builder = RecordBuilder(scale=10**6, wait_resumption=WaitResumption.TRIGGERED)
    builder.add_ticks(0, 5, 1, True)
    builder.add_wait(WaitMarker("trigger", 5e-6), 5)
    builder.add_ticks(5, 1, 1, True)
    builder.add_ticks(6, 2, 1, True)

    records = [
        record for record in builder.build() if isinstance(record, TickRecord)
    ]

    assert [record.origin_time for record in records] == [0.0, 0.0, 1e-6]


def test_builder_length():
    builder = RecordBuilder(scale=10**6)
    assert len(builder) == 0
    builder.add_ticks(0, 1, 1, True)
    assert len(builder) == 1
    builder.add_ticks(1, 1, 1, True)
    assert len(builder) == 1
    builder.add_wait(WaitMarker("trigger"), 2)
    assert len(builder) == 2

import pytest

from medivision.schedule import due_medicines, time_of_day
from medivision.schema import WhenToTake

from conftest import make_record, med


@pytest.mark.parametrize("hour", range(0, 17))
def test_morning_hours(hour):
    assert time_of_day(hour) == WhenToTake.MORNING


@pytest.mark.parametrize("hour", range(17, 24))
def test_evening_hours(hour):
    assert time_of_day(hour) == WhenToTake.EVENING


@pytest.mark.parametrize("hour", [-1, 24, 99])
def test_hour_out_of_range(hour):
    with pytest.raises(ValueError):
        time_of_day(hour)


@pytest.mark.parametrize("hour", range(0, 24))
def test_both_is_always_due(hour):
    records = [make_record(med("Metformin", WhenToTake.BOTH, 2))]
    assert [m.name for m in due_medicines(records, hour)] == ["Metformin"]


def test_filters_by_time_of_day(paracetamol_records):
    assert [m.name for m in due_medicines(paracetamol_records, 9)] == ["Paracetamol"]
    assert [m.name for m in due_medicines(paracetamol_records, 20)] == ["Ibuprofen"]


def test_keeps_order_and_duplicates():
    records = [
        make_record(med("Aspirin"), med("Metformin", WhenToTake.BOTH), record_id="a"),
        make_record(med("Zinc"), med("Aspirin"), record_id="b"),
    ]

    names = [m.name for m in due_medicines(records, 8)]

    assert names == ["Aspirin", "Metformin", "Zinc", "Aspirin"]


def test_nothing_due_returns_empty_list():
    records = [make_record(med("Melatonin", WhenToTake.EVENING))]
    assert due_medicines(records, 7) == []
    assert due_medicines([], 7) == []

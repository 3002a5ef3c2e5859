import asyncio

import pytest
from pymongo.errors import ConnectionFailure

from school_app.core.sequences import (
    SequenceAllocationError,
    ensure_seeded,
    identifier_lookup,
    next_sequence_value,
    parse_sequence_suffix,
    read_sequence_value,
)
from school_app.models.counter import Counter
from school_app.models.student import Student


class UnreachableCollection:
    """Stands in for a Motor collection whose server has gone away."""
    def __getattr__(self, name):
        async def fail(*args, **kwargs):
            raise ConnectionFailure("connection refused")
        return fail


@pytest.fixture
def unreachable_counters(monkeypatch):
    monkeypatch.setattr(Counter, "get_motor_collection", classmethod(lambda cls: UnreachableCollection()))


def _legacy_student(student_id, academic_year="2025-2026", roll="1"):
    # Built directly so the insert hook sees an explicit id
    return Student(
        student_id=student_id,
        roll_number=roll,
        class_name="5",
        section="A",
        academic_year=academic_year,
        first_name="Legacy",
        admission_date="2024-04-01T00:00:00",
    )


async def test_first_value_is_one(db):
    assert await next_sequence_value("receiptNumber:2025") == 1
    assert await read_sequence_value("receiptNumber:2025") == 1


async def test_values_increase_by_one(db):
    values = [await next_sequence_value("employeeId") for _ in range(5)]
    assert values == [1, 2, 3, 4, 5]


async def test_concurrent_calls_get_distinct_contiguous_values(db):
    values = await asyncio.gather(*(next_sequence_value("studentId:2025-2026") for _ in range(100)))
    assert sorted(values) == list(range(1, 101))
    assert await read_sequence_value("studentId:2025-2026") == 100


async def test_keys_are_independent(db):
    await next_sequence_value("studentId:2025-2026")
    await next_sequence_value("studentId:2025-2026")
    assert await next_sequence_value("studentId:2026-2027") == 1
    assert await next_sequence_value("studentId:2025-2026") == 3


async def test_one_counter_row_per_key(db):
    await asyncio.gather(*(next_sequence_value("applicationNumber:2025-06") for _ in range(10)))
    assert await Counter.find(Counter.key == "applicationNumber:2025-06").count() == 1


async def test_empty_key_rejected(db):
    with pytest.raises(ValueError):
        await next_sequence_value("")


async def test_unreadable_key_is_none(db):
    assert await read_sequence_value("never-used") is None


@pytest.mark.parametrize("identifier,prefix,expected", [
    ("STU250042", "STU25", 42),
    ("STU250042", "STU26", 0),
    ("STU25ABCD", "STU25", 0),
    (None, "STU25", 0),
])
def test_parse_sequence_suffix(identifier, prefix, expected):
    assert parse_sequence_suffix(identifier, prefix) == expected


async def test_seeding_continues_after_legacy_identifiers(db):
    for n in range(1, 6):
        await _legacy_student(f"STU25{n:04d}", roll=str(n)).insert()
    # Same prefix but another academic year; must not be counted
    await _legacy_student("STU250099", academic_year="2024-2025").insert()

    lookup = identifier_lookup(Student, "student_id", "STU25", 4, academic_year="2025-2026")
    await ensure_seeded("studentId:2025-2026", "STU25", lookup)

    assert await read_sequence_value("studentId:2025-2026") == 5
    assert await next_sequence_value("studentId:2025-2026") == 6


async def test_seeding_without_legacy_rows_starts_at_zero(db):
    lookup = identifier_lookup(Student, "student_id", "STU25", 4, academic_year="2025-2026")
    await ensure_seeded("studentId:2025-2026", "STU25", lookup)
    assert await read_sequence_value("studentId:2025-2026") == 0
    assert await next_sequence_value("studentId:2025-2026") == 1


async def test_seeding_is_idempotent(db):
    calls = []

    async def lookup():
        calls.append(1)
        return "FAC007"

    await ensure_seeded("employeeId", "FAC", lookup)
    await next_sequence_value("employeeId")
    await ensure_seeded("employeeId", "FAC", lookup)

    assert len(calls) == 1
    assert await read_sequence_value("employeeId") == 8


async def test_seeding_ignores_malformed_identifiers(db):
    await _legacy_student("STU25XYZ1").insert()
    lookup = identifier_lookup(Student, "student_id", "STU25", 4, academic_year="2025-2026")
    await ensure_seeded("studentId:2025-2026", "STU25", lookup)
    assert await next_sequence_value("studentId:2025-2026") == 1


async def test_unreachable_store_raises_allocation_error(db, unreachable_counters):
    with pytest.raises(SequenceAllocationError) as exc_info:
        await next_sequence_value("employeeId")
    assert isinstance(exc_info.value.__cause__, ConnectionFailure)


async def test_seeding_against_unreachable_store_raises_allocation_error(db, unreachable_counters):
    async def lookup():
        return None

    with pytest.raises(SequenceAllocationError):
        await ensure_seeded("employeeId", "FAC", lookup)


async def test_seeding_keeps_row_created_by_concurrent_caller(db):
    # Another process creates the counter between the existence check and the seed write
    async def lookup():
        await Counter.get_motor_collection().insert_one({"key": "studentId:2025-2026", "seq": 50})
        return "STU250005"

    await ensure_seeded("studentId:2025-2026", "STU25", lookup)

    assert await read_sequence_value("studentId:2025-2026") == 50
    assert await Counter.find(Counter.key == "studentId:2025-2026").count() == 1
    assert await next_sequence_value("studentId:2025-2026") == 51

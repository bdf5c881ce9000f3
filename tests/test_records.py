from dataclasses import FrozenInstanceError
from datetime import date, datetime
from decimal import Decimal

import pytest

from models import Classification, RecordAnomaly, TransactionType
from records import (
    TransactionRecord,
    ValidationError,
    classify,
    normalize,
    normalize_batch,
)


def test_normalize_reads_wire_fields() -> None:
    record = normalize(
        {
            "_id": "665f1c",
            "type": "Expense",
            "category": " Food ",
            "amount": 12.5,
            "date": "2024-03-02",
            "description": "Lunch",
            "user_email": "a@x.com",
            "user_name": "Ana",
            "created_at": "2024-03-02T12:30:00.000Z",
        }
    )
    assert record.id == "665f1c"
    assert record.type is TransactionType.expense
    assert record.category == "Food"
    assert record.amount == Decimal("12.5")
    assert record.date == date(2024, 3, 2)
    assert record.month == 2
    assert record.owner_email == "a@x.com"
    assert record.owner_name == "Ana"
    assert record.created_at is not None and record.created_at.year == 2024
    assert record.anomalies == frozenset()


@pytest.mark.parametrize("raw_type", ["income", "INCOME", " Income "])
def test_type_is_case_insensitive(raw_type: str) -> None:
    record = normalize({"type": raw_type, "amount": "10", "date": "2024-01-01"})
    assert record.type is TransactionType.income
    assert classify(record) is Classification.income


def test_unrecognized_type_is_kept_as_unclassified() -> None:
    record = normalize({"type": "transfer", "amount": "10", "date": "2024-01-01"})
    assert record.type is None
    assert RecordAnomaly.unrecognized_type in record.anomalies
    assert classify(record) is Classification.unclassified


def test_missing_type_is_unclassified() -> None:
    record = normalize({"amount": "10", "date": "2024-01-01"})
    assert classify(record) is Classification.unclassified


def test_unparseable_amount_is_coerced_to_zero() -> None:
    record = normalize({"type": "Expense", "amount": "abc", "date": "2024-01-01"})
    assert record.amount == Decimal("0")
    assert not record.amount_valid
    assert RecordAnomaly.invalid_amount in record.anomalies


@pytest.mark.parametrize("raw_amount", [None, True, "NaN", "Infinity", float("inf"), ""])
def test_non_finite_or_missing_amounts_are_flagged(raw_amount) -> None:
    record = normalize({"type": "Income", "amount": raw_amount, "date": "2024-01-01"})
    assert record.amount == Decimal("0")
    assert RecordAnomaly.invalid_amount in record.anomalies


def test_negative_amount_rejects_the_record() -> None:
    with pytest.raises(ValidationError) as excinfo:
        normalize({"type": "Expense", "amount": "-5", "date": "2024-01-01"})
    assert excinfo.value.field == "amount"


def test_record_construction_rejects_negative_amount() -> None:
    with pytest.raises(ValidationError):
        TransactionRecord(
            id="1",
            type=TransactionType.expense,
            category="Food",
            amount=Decimal("-0.01"),
            date=date(2024, 1, 1),
        )


@pytest.mark.parametrize(
    "raw_date, expected",
    [
        ("2024-01-15", date(2024, 1, 15)),
        ("2024-01-15T23:59:00Z", date(2024, 1, 15)),
        ("15.01.2024", date(2024, 1, 15)),
        (date(2024, 1, 15), date(2024, 1, 15)),
        (datetime(2024, 1, 15, 8, 0), date(2024, 1, 15)),
    ],
)
def test_date_formats(raw_date, expected) -> None:
    record = normalize({"type": "Expense", "amount": 1, "date": raw_date})
    assert record.date == expected


def test_invalid_date_is_flagged_not_fatal() -> None:
    record = normalize({"type": "Expense", "amount": 1, "date": "not a date"})
    assert record.date is None
    assert record.month is None
    assert RecordAnomaly.invalid_date in record.anomalies


def test_batch_keeps_going_after_a_rejected_record() -> None:
    raws = [
        {"_id": "a", "type": "Income", "amount": 100, "date": "2024-01-01"},
        {"_id": "b", "type": "Expense", "amount": -3, "date": "2024-01-02"},
        {"_id": "c", "type": "Expense", "amount": "abc", "date": "2024-01-03"},
    ]
    batch = normalize_batch(raws)
    assert [r.id for r in batch.records] == ["a", "c"]
    assert [idx for idx, _ in batch.rejected] == [1]


def test_normalize_does_not_mutate_input() -> None:
    raw = {"type": "income", "amount": "5", "date": "2024-01-01", "category": " x "}
    snapshot = dict(raw)
    normalize(raw)
    assert raw == snapshot


def test_records_are_immutable() -> None:
    record = normalize({"type": "Income", "amount": 1, "date": "2024-01-01"})
    with pytest.raises(FrozenInstanceError):
        record.amount = Decimal("2")  # type: ignore[misc]

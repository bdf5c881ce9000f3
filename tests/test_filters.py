from datetime import date
from decimal import Decimal

import pytest

from filters import (
    CategoryFilter,
    FilterCriteria,
    FilterPipeline,
    MonthFilter,
    RecordFilter,
    apply_filters,
)
from models import TransactionType
from records import TransactionRecord, normalize


def _records() -> list[TransactionRecord]:
    raws = [
        {"_id": "1", "type": "Expense", "category": "Food", "amount": 10, "date": "2024-03-01"},
        {"_id": "2", "type": "Expense", "category": "Home", "amount": 20, "date": "2024-03-09"},
        {"_id": "3", "type": "Income", "category": "Salary", "amount": 500, "date": "2024-04-01"},
        {"_id": "4", "type": "Expense", "category": "Food", "amount": 5, "date": "2023-04-20"},
        {"_id": "5", "type": "Expense", "category": "Food", "amount": 7, "date": "garbage"},
    ]
    return [normalize(raw) for raw in raws]


def _ids(records: list[TransactionRecord]) -> list[str]:
    return [r.id for r in records]


def test_no_criteria_passes_everything() -> None:
    records = _records()
    assert apply_filters(records, FilterCriteria()) == records
    assert apply_filters(records) == records


def test_month_filter_uses_zero_based_month_and_skips_undated() -> None:
    assert _ids(apply_filters(_records(), FilterCriteria(month=2))) == ["1", "2"]
    assert _ids(apply_filters(_records(), FilterCriteria(month=3))) == ["3", "4"]


def test_category_filter_is_exact_and_case_sensitive() -> None:
    assert _ids(apply_filters(_records(), FilterCriteria(category="Food"))) == [
        "1",
        "4",
        "5",
    ]
    assert apply_filters(_records(), FilterCriteria(category="food")) == []


def test_filters_combine_with_and() -> None:
    criteria = FilterCriteria(month=3, category="Food")
    assert _ids(apply_filters(_records(), criteria)) == ["4"]


def test_type_filter() -> None:
    criteria = FilterCriteria(transaction_type=TransactionType.income)
    assert _ids(apply_filters(_records(), criteria)) == ["3"]


def test_unknown_category_yields_empty() -> None:
    assert apply_filters(_records(), FilterCriteria(category="Travel")) == []


def test_filtering_is_idempotent() -> None:
    criteria = FilterCriteria(month=2, category="Food")
    once = apply_filters(_records(), criteria)
    assert apply_filters(once, criteria) == once


@pytest.mark.parametrize("month", [-1, 12])
def test_month_out_of_range_is_rejected(month: int) -> None:
    with pytest.raises(ValueError):
        FilterCriteria(month=month)
    with pytest.raises(ValueError):
        MonthFilter(month)


def test_pipeline_accepts_new_filter_dimensions() -> None:
    class MinimumAmount(RecordFilter):
        def __init__(self, minimum: Decimal) -> None:
            self.minimum = minimum

        def matches(self, record: TransactionRecord) -> bool:
            return record.amount >= self.minimum

    pipeline = FilterPipeline([CategoryFilter("Food")]).and_then(
        MinimumAmount(Decimal("6"))
    )
    assert len(pipeline) == 2
    assert _ids(pipeline.apply(_records())) == ["1", "5"]


def test_filtering_does_not_mutate_input() -> None:
    records = _records()
    before = list(records)
    apply_filters(records, FilterCriteria(category="Food"))
    assert records == before
    assert records[0].date == date(2024, 3, 1)

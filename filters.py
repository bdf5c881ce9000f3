from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from models import TransactionType
from records import TransactionRecord


@dataclass(frozen=True)
class FilterCriteria:
    month: Optional[int] = None
    category: Optional[str] = None
    transaction_type: Optional[TransactionType] = None

    def __post_init__(self) -> None:
        if self.month is not None and not 0 <= self.month <= 11:
            raise ValueError("Month must be between 0 (January) and 11 (December)")

    @property
    def is_empty(self) -> bool:
        return (
            self.month is None
            and self.category is None
            and self.transaction_type is None
        )


class RecordFilter:
    """A single predicate over records. Subclasses implement ``matches``."""

    def matches(self, record: TransactionRecord) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    def __call__(self, record: TransactionRecord) -> bool:
        return self.matches(record)


class MonthFilter(RecordFilter):
    def __init__(self, month: int) -> None:
        if not 0 <= month <= 11:
            raise ValueError("Month must be between 0 (January) and 11 (December)")
        self.month = month

    def matches(self, record: TransactionRecord) -> bool:
        # Undated records never match a specific month.
        return record.month == self.month

    def __repr__(self) -> str:
        return f"MonthFilter(month={self.month})"


class CategoryFilter(RecordFilter):
    def __init__(self, category: str) -> None:
        self.category = category

    def matches(self, record: TransactionRecord) -> bool:
        return record.category == self.category

    def __repr__(self) -> str:
        return f"CategoryFilter(category={self.category!r})"


class TypeFilter(RecordFilter):
    def __init__(self, transaction_type: TransactionType) -> None:
        self.transaction_type = transaction_type

    def matches(self, record: TransactionRecord) -> bool:
        return record.type is self.transaction_type

    def __repr__(self) -> str:
        return f"TypeFilter(transaction_type={self.transaction_type.value})"


class OwnerFilter(RecordFilter):
    def __init__(self, owner_email: str) -> None:
        self.owner_email = owner_email

    def matches(self, record: TransactionRecord) -> bool:
        return record.owner_email == self.owner_email

    def __repr__(self) -> str:
        return f"OwnerFilter(owner_email={self.owner_email!r})"


class FilterPipeline:
    """Conjunction of record filters; an empty pipeline passes everything."""

    def __init__(self, filters: Sequence[RecordFilter] = ()) -> None:
        self.filters: tuple[RecordFilter, ...] = tuple(filters)

    @classmethod
    def from_criteria(cls, criteria: FilterCriteria) -> "FilterPipeline":
        filters: list[RecordFilter] = []
        if criteria.month is not None:
            filters.append(MonthFilter(criteria.month))
        if criteria.category is not None:
            filters.append(CategoryFilter(criteria.category))
        if criteria.transaction_type is not None:
            filters.append(TypeFilter(criteria.transaction_type))
        return cls(filters)

    def and_then(self, record_filter: RecordFilter) -> "FilterPipeline":
        return FilterPipeline(self.filters + (record_filter,))

    def matches(self, record: TransactionRecord) -> bool:
        return all(f.matches(record) for f in self.filters)

    def apply(self, records: Iterable[TransactionRecord]) -> list[TransactionRecord]:
        return [record for record in records if self.matches(record)]

    def __len__(self) -> int:
        return len(self.filters)

    def __repr__(self) -> str:
        return f"FilterPipeline({list(self.filters)!r})"


def apply_filters(
    records: Iterable[TransactionRecord], criteria: Optional[FilterCriteria] = None
) -> list[TransactionRecord]:
    if criteria is None:
        return list(records)
    return FilterPipeline.from_criteria(criteria).apply(records)

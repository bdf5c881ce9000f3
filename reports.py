"""Derived figures over a collection of normalized transaction records.

Every function here is pure: it reads the records it is given and returns a
new value. Amounts stay as full-precision ``Decimal`` values; rounding to two
places happens only in the ``as_dict`` presentation helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from filters import CategoryFilter, FilterPipeline, OwnerFilter, TypeFilter
from models import (
    DEFAULT_CATEGORIES,
    Classification,
    RecordAnomaly,
    TransactionType,
)
from records import TransactionRecord, classify

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

MONTH_LABELS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def round_money(value: Decimal) -> float:
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


def _percent(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return part / whole * HUNDRED


@dataclass(frozen=True)
class Summary:
    total_income: Decimal
    total_expense: Decimal
    balance: Decimal
    transaction_count: int
    income_count: int
    expense_count: int
    savings_rate_pct: Decimal
    expense_ratio_pct: Decimal
    unclassified_count: int
    invalid_amount_count: int
    invalid_date_count: int

    def as_dict(self) -> dict[str, object]:
        return {
            "total_income": round_money(self.total_income),
            "total_expense": round_money(self.total_expense),
            "balance": round_money(self.balance),
            "transaction_count": self.transaction_count,
            "income_count": self.income_count,
            "expense_count": self.expense_count,
            "savings_rate_pct": round_money(self.savings_rate_pct),
            "expense_ratio_pct": round_money(self.expense_ratio_pct),
            "excluded": {
                "unclassified": self.unclassified_count,
                "invalid_amount": self.invalid_amount_count,
                "invalid_date": self.invalid_date_count,
            },
        }


def aggregate(records: Iterable[TransactionRecord]) -> Summary:
    total_income = ZERO
    total_expense = ZERO
    count = income_count = expense_count = unclassified = 0
    invalid_amount = invalid_date = 0

    for record in records:
        count += 1
        if RecordAnomaly.invalid_amount in record.anomalies:
            invalid_amount += 1
        if RecordAnomaly.invalid_date in record.anomalies:
            invalid_date += 1
        kind = classify(record)
        if kind is Classification.income:
            income_count += 1
            total_income += record.amount
        elif kind is Classification.expense:
            expense_count += 1
            total_expense += record.amount
        else:
            unclassified += 1

    balance = total_income - total_expense
    return Summary(
        total_income=total_income,
        total_expense=total_expense,
        balance=balance,
        transaction_count=count,
        income_count=income_count,
        expense_count=expense_count,
        savings_rate_pct=_percent(balance, total_income),
        expense_ratio_pct=_percent(total_expense, total_income),
        unclassified_count=unclassified,
        invalid_amount_count=invalid_amount,
        invalid_date_count=invalid_date,
    )


@dataclass(frozen=True)
class MonthBucket:
    index: int
    label: str
    total: Decimal


@dataclass(frozen=True)
class MonthlySeries:
    transaction_type: TransactionType
    buckets: tuple[MonthBucket, ...]
    skipped_count: int

    @property
    def totals(self) -> list[Decimal]:
        return [bucket.total for bucket in self.buckets]

    @property
    def grand_total(self) -> Decimal:
        return sum(self.totals, ZERO)

    def as_dict(self) -> dict[str, object]:
        return {
            "type": self.transaction_type.value,
            "labels": list(MONTH_LABELS),
            "values": [round_money(total) for total in self.totals],
            "skipped": self.skipped_count,
        }


def bucket_by_month(
    records: Iterable[TransactionRecord],
    transaction_type: TransactionType = TransactionType.expense,
) -> MonthlySeries:
    """Sum amounts per calendar month, Jan..Dec, folding all years together.

    Records of other types are ignored; records of the requested type without
    a usable date are left out and counted in ``skipped_count``.
    """
    totals = [ZERO] * 12
    skipped = 0
    for record in records:
        if record.type is not transaction_type:
            continue
        month = record.month
        if month is None:
            skipped += 1
            continue
        totals[month] += record.amount
    buckets = tuple(
        MonthBucket(index=idx, label=MONTH_LABELS[idx], total=total)
        for idx, total in enumerate(totals)
    )
    return MonthlySeries(
        transaction_type=transaction_type, buckets=buckets, skipped_count=skipped
    )


def category_breakdown(
    records: Iterable[TransactionRecord],
    transaction_type: TransactionType = TransactionType.expense,
) -> list[dict[str, object]]:
    totals: dict[str, Decimal] = {}
    for record in records:
        if record.type is not transaction_type:
            continue
        totals[record.category] = totals.get(record.category, ZERO) + record.amount

    total = sum(totals.values(), ZERO)
    breakdown = [
        {"name": name, "amount": amount, "percent": _percent(amount, total)}
        for name, amount in totals.items()
    ]
    breakdown.sort(key=lambda row: row["amount"], reverse=True)
    return breakdown


def available_categories(
    records: Iterable[TransactionRecord],
    transaction_type: Optional[TransactionType] = None,
) -> list[str]:
    seen: dict[str, None] = {}
    for record in records:
        if transaction_type is not None and record.type is not transaction_type:
            continue
        if record.category:
            seen.setdefault(record.category, None)
    return list(seen)


def category_choices(
    records: Iterable[TransactionRecord],
    transaction_type: Optional[TransactionType] = None,
) -> list[str]:
    """Suggested categories: the built-in list for the type, then any used ones.

    Without a type, both built-in lists are offered (expense first). The lists
    are suggestions only; records may carry any category.
    """
    types = (
        [transaction_type]
        if transaction_type is not None
        else [TransactionType.expense, TransactionType.income]
    )
    seen: dict[str, None] = {}
    for txn_type in types:
        for name in DEFAULT_CATEGORIES[txn_type]:
            seen.setdefault(name, None)
    for name in available_categories(records, transaction_type):
        seen.setdefault(name, None)
    return list(seen)


def category_total(
    records: Sequence[TransactionRecord],
    owner_email: str,
    category: str,
    transaction_type: Optional[TransactionType] = None,
) -> Decimal:
    """Lifetime total for one owner and category, ignoring any report filters."""
    pipeline = FilterPipeline([OwnerFilter(owner_email), CategoryFilter(category)])
    if transaction_type is not None:
        pipeline = pipeline.and_then(TypeFilter(transaction_type))
    total = ZERO
    for record in pipeline.apply(records):
        if classify(record) is Classification.unclassified:
            continue
        total += record.amount
    return total

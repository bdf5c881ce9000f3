"""Canonical transaction records and their normalization from raw storage rows.

Raw rows come from the storage collaborator as plain mappings using the wire
field names (``_id``, ``type``, ``category``, ``amount``, ``date``,
``description``, ``user_email``, ``user_name``, ``created_at``). Malformed
amounts, dates and types are tolerated: the record is kept and the problem is
recorded in ``anomalies``. A negative amount is the only per-record fault that
rejects the record outright.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from csv_utils import parse_amount, parse_date
from models import Classification, RecordAnomaly, TransactionType

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class ValidationError(ValueError):
    def __init__(self, field_name: str, message: str) -> None:
        super().__init__(f"{field_name}: {message}")
        self.field = field_name
        self.message = message


@dataclass(frozen=True)
class TransactionRecord:
    id: Optional[str]
    type: Optional[TransactionType]
    category: str
    amount: Decimal
    date: Optional[date]
    description: Optional[str] = None
    owner_email: Optional[str] = None
    owner_name: Optional[str] = None
    created_at: Optional[datetime] = None
    anomalies: frozenset[RecordAnomaly] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal) or not self.amount.is_finite():
            raise ValidationError("amount", "Amount must be a finite decimal")
        if self.amount < 0:
            raise ValidationError("amount", "Amount must not be negative")

    @property
    def amount_valid(self) -> bool:
        return RecordAnomaly.invalid_amount not in self.anomalies

    @property
    def month(self) -> Optional[int]:
        """Zero-based calendar month (0 = January), or None when undated."""
        if self.date is None:
            return None
        return self.date.month - 1

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "type": self.type.value if self.type else None,
            "category": self.category,
            "amount": float(self.amount),
            "date": self.date.isoformat() if self.date else None,
            "description": self.description,
            "user_email": self.owner_email,
            "user_name": self.owner_name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "anomalies": sorted(a.value for a in self.anomalies),
        }


@dataclass(frozen=True)
class NormalizedBatch:
    records: list[TransactionRecord]
    rejected: list[tuple[int, ValidationError]]


def _optional_text(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_created_at(value: object) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    stamp = value.strip()
    if stamp.endswith("Z"):
        stamp = stamp[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(stamp)
    except ValueError:
        return None


def normalize(raw: Mapping[str, object]) -> TransactionRecord:
    anomalies: set[RecordAnomaly] = set()

    txn_type = TransactionType.parse(raw.get("type"))
    if txn_type is None:
        anomalies.add(RecordAnomaly.unrecognized_type)

    try:
        amount = parse_amount(raw.get("amount"), allow_negative=True)
    except ValueError:
        amount = ZERO
        anomalies.add(RecordAnomaly.invalid_amount)
    if amount < 0:
        raise ValidationError("amount", "Amount must not be negative")

    try:
        txn_date: Optional[date] = parse_date(raw.get("date"))
    except ValueError:
        txn_date = None
        anomalies.add(RecordAnomaly.invalid_date)

    raw_id = raw.get("_id", raw.get("id"))
    return TransactionRecord(
        id=str(raw_id) if raw_id is not None else None,
        type=txn_type,
        category=str(raw.get("category") or "").strip(),
        amount=amount,
        date=txn_date,
        description=_optional_text(raw.get("description")),
        owner_email=_optional_text(raw.get("user_email")),
        owner_name=_optional_text(raw.get("user_name")),
        created_at=_parse_created_at(raw.get("created_at")),
        anomalies=frozenset(anomalies),
    )


def normalize_batch(raws: Iterable[Mapping[str, object]]) -> NormalizedBatch:
    records: list[TransactionRecord] = []
    rejected: list[tuple[int, ValidationError]] = []
    for idx, raw in enumerate(raws):
        try:
            records.append(normalize(raw))
        except ValidationError as exc:
            logger.warning(
                f"normalize_rejected: index={idx} id={raw.get('_id', raw.get('id'))} "
                f"field={exc.field} reason={exc.message}"
            )
            rejected.append((idx, exc))
    anomalous = sum(1 for r in records if r.anomalies)
    logger.debug(
        f"normalize_batch: records={len(records)} rejected={len(rejected)} "
        f"anomalous={anomalous}"
    )
    return NormalizedBatch(records=records, rejected=rejected)


def classify(record: TransactionRecord) -> Classification:
    if record.type is TransactionType.income:
        return Classification.income
    if record.type is TransactionType.expense:
        return Classification.expense
    return Classification.unclassified

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from csv_utils import export_records
from filters import FilterCriteria, apply_filters
from models import TransactionType
from records import (
    NormalizedBatch,
    TransactionRecord,
    ValidationError,
    normalize,
    normalize_batch,
)
from reports import (
    aggregate,
    available_categories,
    bucket_by_month,
    category_breakdown,
    category_choices,
    category_total,
    round_money,
)
from schemas import TransactionIn
from storage import Identity, TransactionNotFound, TransactionStore

logger = logging.getLogger(__name__)


def breakdown_for_display(rows: list[dict[str, object]]) -> list[dict[str, object]]:
    return [
        {
            "name": row["name"],
            "amount": round_money(row["amount"]),
            "percent": round_money(row["percent"]),
        }
        for row in rows
    ]


class ReportService:
    def __init__(
        self,
        store: TransactionStore,
        identity: Identity,
        auth_token: Optional[str] = None,
    ) -> None:
        self.store = store
        self.identity = identity
        self.auth_token = auth_token

    def load(self) -> NormalizedBatch:
        raws = self.store.fetch_transactions(self.identity.email, self.auth_token)
        batch = normalize_batch(raws)
        logger.info(
            f"report_load: owner={self.identity.email} fetched={len(raws)} "
            f"records={len(batch.records)} rejected={len(batch.rejected)}"
        )
        return batch

    def overview(self) -> dict[str, object]:
        batch = self.load()
        summary = aggregate(batch.records).as_dict()
        summary["rejected"] = len(batch.rejected)
        return summary

    def filtered(self, criteria: FilterCriteria) -> list[TransactionRecord]:
        return apply_filters(self.load().records, criteria)

    def report(self, criteria: FilterCriteria) -> dict[str, object]:
        batch = self.load()
        records = apply_filters(batch.records, criteria)
        summary = aggregate(records).as_dict()
        summary["rejected"] = len(batch.rejected)
        return {
            "filters": {
                "month": criteria.month,
                "category": criteria.category,
                "type": criteria.transaction_type.value
                if criteria.transaction_type
                else None,
            },
            "summary": summary,
            "category_breakdown": breakdown_for_display(category_breakdown(records)),
            "monthly_expenses": bucket_by_month(records).as_dict(),
            "available_categories": available_categories(batch.records),
            "has_data": bool(records),
        }

    def export_csv(self, criteria: FilterCriteria) -> str:
        return export_records(self.filtered(criteria))

    def category_total(
        self, category: str, transaction_type: Optional[TransactionType] = None
    ) -> Decimal:
        return category_total(
            self.load().records, self.identity.email, category, transaction_type
        )

    def categories(
        self, transaction_type: Optional[TransactionType] = None
    ) -> list[str]:
        return category_choices(self.load().records, transaction_type)


class TransactionService:
    def __init__(
        self,
        store: TransactionStore,
        identity: Identity,
        auth_token: Optional[str] = None,
    ) -> None:
        self.store = store
        self.identity = identity
        self.auth_token = auth_token

    def create(self, data: TransactionIn) -> TransactionRecord:
        if not self.identity.email:
            raise ValidationError("user_email", "A signed-in user is required")
        payload = {
            "type": data.type.value,
            "category": data.category,
            "amount": data.amount,
            "description": data.description or "",
            "date": data.date,
            "created_at": datetime.now(timezone.utc),
            "user_email": self.identity.email,
            "user_name": self.identity.display_name or "",
        }
        stored = self.store.add_transaction(payload, self.auth_token)
        record = normalize(stored)
        logger.info(
            f"transaction_created: owner={self.identity.email} id={record.id} "
            f"type={data.type.value} category={data.category}"
        )
        return record

    def get(self, transaction_id: str) -> TransactionRecord:
        record = normalize(self.store.fetch_transaction(transaction_id, self.auth_token))
        if record.owner_email != self.identity.email:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        return record

    def detail(self, transaction_id: str) -> dict[str, object]:
        record = self.get(transaction_id)
        reports = ReportService(self.store, self.identity, self.auth_token)
        total = reports.category_total(record.category, record.type)
        return {
            "transaction": record.to_dict(),
            "category_total": round_money(total),
        }

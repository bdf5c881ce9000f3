from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class TransactionType(str, Enum):
    income = "Income"
    expense = "Expense"

    @classmethod
    def parse(cls, value: object) -> Optional["TransactionType"]:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        clean = value.strip().lower()
        for member in cls:
            if member.value.lower() == clean:
                return member
        return None


DEFAULT_CATEGORIES: dict[TransactionType, tuple[str, ...]] = {
    TransactionType.expense: (
        "Home",
        "Food",
        "Transportation",
        "Health",
        "Personal",
        "Education",
        "Technology",
        "Entertainment",
        "Family",
        "Others",
    ),
    TransactionType.income: ("Salary", "Pocket Money", "Business", "Tutoring"),
}


class Classification(str, Enum):
    income = "income"
    expense = "expense"
    unclassified = "unclassified"


class RecordAnomaly(str, Enum):
    unrecognized_type = "unrecognized_type"
    invalid_amount = "invalid_amount"
    invalid_date = "invalid_date"


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_email: Mapped[str] = mapped_column(String(255), nullable=False)
    user_name: Mapped[Optional[str]] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_transactions_user_date", "user_email", "date"),
        Index("ix_transactions_user_category", "user_email", "category"),
        CheckConstraint("amount >= 0", name="ck_transactions_amount_positive"),
    )

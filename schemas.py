import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models import TransactionType


class TransactionIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType = TransactionType.expense
    category: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(
        ..., ge=0, allow_inf_nan=False, max_digits=14, decimal_places=2
    )
    date: dt.date
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("type", mode="before")
    @classmethod
    def _case_insensitive_type(cls, value: object) -> object:
        parsed = TransactionType.parse(value)
        return parsed if parsed is not None else value

    @field_validator("description")
    @classmethod
    def _blank_description_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

import csv
from decimal import Decimal
from io import StringIO

import pytest

from csv_utils import export_records, parse_amount, sanitize_csv_value
from records import normalize


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12.50", Decimal("12.50")),
        ("12,50", Decimal("12.50")),
        ("1,234.56", Decimal("1234.56")),
        ("1,234,567", Decimal("1234567")),
        ("1.234,56", Decimal("1234.56")),
        ("1.234.567", Decimal("1234567")),
        ("+1,234.50", Decimal("1234.50")),
        ("1.234", Decimal("1.234")),
        ("৳ 300", Decimal("300")),
        ("$5", Decimal("5")),
        (42, Decimal("42")),
        (0.1, Decimal("0.1")),
    ],
)
def test_parse_amount(raw, expected) -> None:
    assert parse_amount(raw) == expected


def test_parse_amount_rejects_negative_unless_allowed() -> None:
    with pytest.raises(ValueError):
        parse_amount("-1")
    assert parse_amount("-1", allow_negative=True) == Decimal("-1")


@pytest.mark.parametrize("raw", ["abc", "", "NaN", None, False, [1]])
def test_parse_amount_rejects_garbage(raw) -> None:
    with pytest.raises(ValueError):
        parse_amount(raw)


def test_sanitize_csv_value_blocks_formulas() -> None:
    assert sanitize_csv_value("=SUM(A1:A2)") == "\t=SUM(A1:A2)"
    assert sanitize_csv_value(" Food ") == "Food"


def test_export_records() -> None:
    records = [
        normalize(
            {
                "type": "Expense",
                "category": "Food",
                "amount": "7.5",
                "date": "2024-02-03",
                "description": "=HYPERLINK()",
            }
        ),
        normalize({"type": "Other", "category": "Misc", "amount": "x", "date": "?"}),
    ]
    rows = list(csv.reader(StringIO(export_records(records))))
    assert rows[0] == ["Date", "Type", "Category", "Amount", "Description"]
    assert rows[1] == ["2024-02-03", "Expense", "Food", "7.50", "\t=HYPERLINK()"]
    assert rows[2] == ["", "", "Misc", "0.00", ""]


@pytest.mark.parametrize("raw", ["1,234", "1,2,3", "12,34,567", "1.234.56", "1,234.5.6"])
def test_parse_amount_rejects_ambiguous_separators(raw) -> None:
    with pytest.raises(ValueError):
        parse_amount(raw, allow_negative=True)


def test_ambiguous_amount_is_flagged_instead_of_misread() -> None:
    record = normalize({"type": "Income", "amount": "1,234", "date": "2024-01-01"})
    assert record.amount == Decimal("0")
    assert not record.amount_valid

import csv
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import StringIO
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from records import TransactionRecord


CURRENCY_SYMBOLS = ("৳", "€", "$")


def sanitize_csv_value(value: str) -> str:
    """
    Sanitize CSV values to prevent formula injection by prefixing dangerous patterns with tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    formula_triggers = ("=", "+", "-", "@", "\t", "\r")

    if value.startswith(formula_triggers):
        return "\t" + value

    dangerous_patterns = [
        r"^cmd\s*",
        r"^powershell\s*",
        r"^bash\s*",
        r"^sh\s*",
        r"^\.",
        r"^http[s]?://",
    ]

    for pattern in dangerous_patterns:
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def parse_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError("Invalid date")
    value = value.strip()
    if not value:
        raise ValueError("Invalid date")
    if "T" in value or " " in value:
        stamp = value[:-1] + "+00:00" if value.endswith("Z") else value
        return datetime.fromisoformat(stamp).date()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return datetime.strptime(value, "%d.%m.%Y").date()


def _is_grouped(digits: str, separator: str) -> bool:
    pattern = r"\d{1,3}(?:" + re.escape(separator) + r"\d{3})+"
    return re.fullmatch(pattern, digits) is not None


def _normalize_separators(value: str) -> str:
    """
    Rewrite grouping and decimal separators to plain ``1234.56`` form.

    When both ``,`` and ``.`` appear, the last one is the decimal separator and
    the other must group digits in threes. A repeated separator is a grouping
    separator. A single comma followed by exactly three digits could be either,
    so it is rejected.
    """
    sign = ""
    if value[:1] in ("+", "-"):
        sign, value = value[0], value[1:]
    has_comma = "," in value
    has_dot = "." in value

    if has_comma and has_dot:
        decimal_sep = "," if value.rfind(",") > value.rfind(".") else "."
        group_sep = "." if decimal_sep == "," else ","
        whole, _, fraction = value.rpartition(decimal_sep)
        if group_sep in fraction or not _is_grouped(whole, group_sep):
            raise ValueError("Invalid amount")
        return f"{sign}{whole.replace(group_sep, '')}.{fraction}"

    if not has_comma and not has_dot:
        return sign + value
    separator = "," if has_comma else "."
    if value.count(separator) > 1:
        if not _is_grouped(value, separator):
            raise ValueError("Invalid amount")
        return sign + value.replace(separator, "")
    whole, _, fraction = value.partition(separator)
    if separator == "," and len(fraction) == 3 and fraction.isdigit():
        raise ValueError("Ambiguous amount separator")
    return f"{sign}{whole}.{fraction}"


def parse_amount(value: object, *, allow_negative: bool = False) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValueError("Invalid amount")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        clean = value.strip().replace(" ", "")
        for symbol in CURRENCY_SYMBOLS:
            clean = clean.replace(symbol, "")
        clean = _normalize_separators(clean)
        try:
            amount = Decimal(clean)
        except InvalidOperation as exc:
            raise ValueError("Invalid amount") from exc
    else:
        raise ValueError("Invalid amount")
    if not amount.is_finite():
        raise ValueError("Invalid amount")
    if amount < 0 and not allow_negative:
        raise ValueError("Amount must be positive")
    return amount


def export_records(records: Sequence["TransactionRecord"]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Date", "Type", "Category", "Amount", "Description"])
    for record in records:
        writer.writerow(
            [
                record.date.isoformat() if record.date else "",
                record.type.value if record.type else "",
                sanitize_csv_value(record.category),
                f"{record.amount:.2f}",
                sanitize_csv_value(record.description or ""),
            ]
        )
    return output.getvalue()

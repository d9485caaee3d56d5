"""Conversions between JSON documents and DynamoDB attribute values.

DynamoDB rejects Python floats, and boto3 returns every number as Decimal.
Payloads received from the processor are converted on the way in and
converted back before they are rendered as JSON.

DynamoDB numbers hold at most 38 significant digits with a magnitude
between 1E-130 and 1E+126. Numbers outside that (including ``inf`` and
``nan``, which ``json.loads`` accepts) are stored as their string form so
the surrounding document is still written.
"""

from decimal import Decimal
from typing import Any

DYNAMODB_MAX_DIGITS = 38
DYNAMODB_MIN_EXPONENT = -130
DYNAMODB_MAX_EXPONENT = 125


def fits_dynamodb_number(number: Decimal) -> bool:
    """Whether DynamoDB can store ``number`` without rounding or overflow."""
    if not number.is_finite():
        return False
    if number.is_zero():
        return True
    significant = "".join(map(str, number.as_tuple().digits)).rstrip("0")
    return (
        len(significant) <= DYNAMODB_MAX_DIGITS
        and DYNAMODB_MIN_EXPONENT <= number.adjusted() <= DYNAMODB_MAX_EXPONENT
    )


def _to_dynamodb_number(value: int | float) -> Decimal | str:
    # Floats go through str() so 0.1 stays 0.1
    number = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    return number if fits_dynamodb_number(number) else str(value)


def to_dynamodb_value(value: Any) -> Any:
    """Convert a JSON-compatible value into one boto3 can store."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return _to_dynamodb_number(value)
    if isinstance(value, Decimal):
        return value if fits_dynamodb_number(value) else str(value)
    if isinstance(value, dict):
        return {str(key): to_dynamodb_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamodb_value(item) for item in value]
    return value


def from_dynamodb_value(value: Any) -> Any:
    """Convert DynamoDB Decimals back into ints and floats, recursively."""
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, dict):
        return {key: from_dynamodb_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [from_dynamodb_value(item) for item in value]
    if isinstance(value, set):
        return [from_dynamodb_value(item) for item in sorted(value)]
    return value

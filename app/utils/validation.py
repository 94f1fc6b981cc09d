"""
Validation utilities shared by request models and services
"""
from decimal import Decimal, InvalidOperation
from typing import Annotated

from pydantic import AfterValidator, BeforeValidator, Field

from app.domain.errors import validation_failed
from app.utils.dates import is_valid_date, is_valid_month

MAX_DECIMAL_PLACES = 2


def normalize_decimal_input(value: str) -> str:
    """
    Нормализовать ввод суммы: заменить запятую на точку

    Example:
        >>> normalize_decimal_input("100,50")
        "100.50"
    """
    return value.replace(",", ".")


def validate_decimal_amount(value, max_decimal_places: int = MAX_DECIMAL_PLACES) -> tuple[bool, str | None]:
    """
    Валидация денежной суммы

    Args:
        value: str / int / float / Decimal
        max_decimal_places: максимум знаков после запятой (по умолчанию 2)

    Returns:
        (is_valid, error_message)

    Example:
        >>> validate_decimal_amount("100.50")
        (True, None)
        >>> validate_decimal_amount("100.505")
        (False, "must have at most 2 decimal places")
    """
    try:
        decimal_value = Decimal(normalize_decimal_input(str(value)))
    except (InvalidOperation, ValueError):
        return False, "must be a valid number"

    if not decimal_value.is_finite():
        return False, "must be a finite number"

    # trailing zeros do not count: 1.500 is a valid 2-place amount
    if -decimal_value.normalize().as_tuple().exponent > max_decimal_places:
        return False, f"must have at most {max_decimal_places} decimal places"

    return True, None


def check_positive_amount(value: Decimal) -> Decimal:
    """
    Amount must be finite, strictly positive and have at most 2 decimal places

    Example:
        >>> check_positive_amount(Decimal("10.5"))
        Decimal('10.5')
        >>> check_positive_amount(Decimal("0"))
        ValueError: must be a positive number
    """
    is_valid, error = validate_decimal_amount(value)
    if not is_valid:
        raise ValueError(error)
    if value <= 0:
        raise ValueError("must be a positive number")
    return value


def check_non_negative(value: Decimal) -> Decimal:
    is_valid, error = validate_decimal_amount(value)
    if not is_valid:
        raise ValueError(error)
    if value < 0:
        raise ValueError("must be a non-negative number")
    return value


def _float_as_text(value):
    # JSON numbers arrive as floats; 19.99 must become Decimal("19.99"), not its binary expansion
    if isinstance(value, float):
        return str(value)
    return value


def check_iso_date(value: str) -> str:
    if not is_valid_date(value):
        raise ValueError("must be a valid date in YYYY-MM-DD format")
    return value


def check_month(value: str) -> str:
    if not is_valid_month(value):
        raise ValueError("must be in YYYY-MM format")
    return value


PositiveAmount = Annotated[Decimal, BeforeValidator(_float_as_text), Field(allow_inf_nan=False), AfterValidator(check_positive_amount)]
NonNegativeAmount = Annotated[Decimal, BeforeValidator(_float_as_text), Field(allow_inf_nan=False), AfterValidator(check_non_negative)]
IsoDate = Annotated[str, AfterValidator(check_iso_date)]
Month = Annotated[str, AfterValidator(check_month)]


def require_amount(value, field: str = "amount", allow_zero: bool = False) -> Decimal:
    """
    Service-side amount check for values that did not come through a request model

    Raises:
        AppError(VALIDATION_FAILED)
    """
    try:
        amount = Decimal(normalize_decimal_input(str(value)))
    except InvalidOperation:
        raise validation_failed("Validation failed", [f'Field "{field}" must be a valid number'])

    check = check_non_negative if allow_zero else check_positive_amount
    try:
        return check(amount)
    except ValueError as exc:
        raise validation_failed("Validation failed", [f'Field "{field}" {exc}'])


def require_month(value: str, field: str = "month") -> str:
    """
    Validate a month taken from a path or query parameter

    Raises:
        AppError(VALIDATION_FAILED)
    """
    if not is_valid_month(value):
        raise validation_failed("Validation failed", [f'Field "{field}" must be in YYYY-MM format'])
    return value

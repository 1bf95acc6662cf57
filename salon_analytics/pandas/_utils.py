"""Shared utilities for pandas conversion operations."""

import numbers
from decimal import Decimal

import pandas as pd  # type: ignore


def decimal_to_float(value: Decimal | None) -> float | None:
    """Convert Decimal to float for pandas compatibility (None passes through)."""
    return None if value is None else float(value)


def float_to_decimal(value: float) -> Decimal:
    """Convert float to Decimal, avoiding precision issues.

    Args:
        value: Float value to convert

    Returns:
        Decimal representation of the float

    Raises:
        TypeError: If value is not numeric

    Example:
        >>> float_to_decimal(123.45)
        Decimal('123.45')
    """
    if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal)):
        raise TypeError(f"Expected numeric type, got {type(value)}")
    return Decimal(str(value))


def optional_datetime(value):
    """Convert a DataFrame cell to a python datetime, mapping NaT/None to None."""
    if value is None or pd.isna(value):
        return None
    return pd.to_datetime(value).to_pydatetime()


def require_columns(df: pd.DataFrame, required: list[str]) -> None:
    missing_cols = set(required) - set(df.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

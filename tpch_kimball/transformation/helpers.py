"""
Model Helper Functions

Scalar and polars-expression versions of the helpers shared by the
dimension and fact builders:
- date -> YYYYMMDD surrogate key
- net sales from gross, discount, tax and the returned flag
- inclusive calendar sequences
- daily key -> monthly key rollup
"""

from datetime import date, datetime
from typing import Optional, Union

import polars as pl

UNKNOWN_KEY = -1

DateLike = Union[date, datetime]


def date_key(value: Optional[DateLike]) -> int:
    """
    Surrogate key of a calendar day, formatted as YYYYMMDD.

    Returns UNKNOWN_KEY for a missing date.
    """
    if value is None:
        return UNKNOWN_KEY
    return value.year * 10000 + value.month * 100 + value.day


def date_key_expr(column: str) -> pl.Expr:
    """Polars expression mapping a Date column to its YYYYMMDD key, null -> -1"""
    return (
        pl.col(column).dt.strftime("%Y%m%d").cast(pl.Int64)
        .fill_null(UNKNOWN_KEY)
    )


def month_key(value: Optional[DateLike]) -> int:
    """Surrogate key of a calendar month, formatted as YYYYMM"""
    if value is None:
        return UNKNOWN_KEY
    return value.year * 100 + value.month


def month_key_from_date_key(key: int) -> int:
    """
    Roll a YYYYMMDD key up to its YYYYMM month key.

    The unknown key is carried through unchanged.
    """
    if key == UNKNOWN_KEY:
        return UNKNOWN_KEY
    return key // 100


def month_key_from_date_key_expr(column: str) -> pl.Expr:
    """Polars version of month_key_from_date_key"""
    return (
        pl.when(pl.col(column) != UNKNOWN_KEY)
        .then(pl.col(column) // 100)
        .otherwise(pl.col(column))
    )


def net_sales(
    gross_sales: Optional[float],
    discount: Optional[float],
    tax: Optional[float],
    is_returned: Optional[int],
) -> float:
    """
    Net sales of a line item.

    net = gross * (1 - discount) * (1 + tax), rounded to cents.
    A returned line keeps no revenue, so its net sales are 0; the
    returned gross value is tracked separately as sales_returned.
    Missing inputs count as 0.
    """
    if is_returned:
        return 0.0
    gross = gross_sales or 0.0
    net = gross * (1 - (discount or 0.0)) * (1 + (tax or 0.0))
    return round(net, 2)


def net_sales_expr(
    gross_col: str = "gross_sales",
    discount_col: str = "discount",
    tax_col: str = "tax",
    returned_col: str = "is_returned",
) -> pl.Expr:
    """Polars version of net_sales"""
    net = (
        pl.col(gross_col).fill_null(0.0)
        * (1 - pl.col(discount_col).fill_null(0.0))
        * (1 + pl.col(tax_col).fill_null(0.0))
    )
    return (
        pl.when(pl.col(returned_col).fill_null(0) == 1)
        .then(pl.lit(0.0))
        .otherwise(net)
        .round(2)
    )


def date_sequence(start: date, end: date, step: str = "1d") -> pl.Series:
    """
    Materialize every date from start to end, both endpoints included.

    Args:
        start: First date of the sequence
        end: Upper bound, included when it falls on a step
        step: Polars interval string ("1d", "1mo", ...)

    Returns:
        Date series named "date"
    """
    if end < start:
        raise ValueError(f"Sequence end {end} is before start {start}")

    return pl.date_range(
        start, end, interval=step, closed="both", eager=True
    ).alias("date")

"""
Dimension Builders

Builds the four SCD Type 1 dimensions of the sales model:
- customers_dim: customers denormalized with nation and region
- parts_dim: part catalog
- date_dim: one row per calendar day
- month_dim: one row per calendar month

Every dimension carries a single unknown member (key -1) that absorbs
fact rows whose foreign key is missing or unresolvable.
"""

from datetime import date
from typing import Any, Dict

import polars as pl
import structlog

from .helpers import UNKNOWN_KEY, date_sequence

logger = structlog.get_logger(__name__)

CALENDAR_START = date(1992, 1, 1)
CALENDAR_END = date(1998, 12, 31)


# =============================================================================
# SCHEMAS
# =============================================================================

CUSTOMERS_DIM_SCHEMA = {
    "key": pl.Int64,
    "name": pl.Utf8,
    "address": pl.Utf8,
    "nation": pl.Utf8,
    "region": pl.Utf8,
    "phone": pl.Utf8,
}

PARTS_DIM_SCHEMA = {
    "key": pl.Int64,
    "name": pl.Utf8,
    "manufacturer": pl.Utf8,
    "brand": pl.Utf8,
    "type": pl.Utf8,
    "size": pl.Int32,
    "container": pl.Utf8,
    "price": pl.Float64,
}

DATE_DIM_SCHEMA = {
    "key": pl.Int64,
    "date": pl.Date,
    "day_of_week_name": pl.Utf8,
    "day_of_week": pl.Int32,  # 1=Sunday ... 7=Saturday
    "day_of_month": pl.Int32,
    "day_of_year": pl.Int32,
    "week_of_year": pl.Int32,  # ISO-8601
    "month_name": pl.Utf8,
    "month_number": pl.Int32,
    "quarter": pl.Int32,
    "year": pl.Int32,
    "is_weekend": pl.Boolean,
}

MONTH_DIM_SCHEMA = {
    "key": pl.Int64,
    "date": pl.Date,
    "month_name": pl.Utf8,
    "month_number": pl.Int32,
    "quarter": pl.Int32,
    "year": pl.Int32,
    "num_days": pl.Int32,
}


# =============================================================================
# UNKNOWN MEMBERS
# =============================================================================

UNKNOWN_CUSTOMER: Dict[str, Any] = {
    "key": UNKNOWN_KEY,
    "name": "unknown name",
    "address": "unknown address",
    "nation": "unknown nation",
    "region": "unknown region",
    "phone": "unknown phone number",
}

UNKNOWN_PART: Dict[str, Any] = {
    "key": UNKNOWN_KEY,
    "name": "unknown part",
    "manufacturer": "unknown manufacturer",
    "brand": "unknown brand",
    "type": "unknown type",
    "size": None,
    "container": "unknown container",
    "price": None,
}

UNKNOWN_DATE: Dict[str, Any] = {
    "key": UNKNOWN_KEY,
    "day_of_week_name": "unknown day of week",
    "month_name": "unknown month",
}

UNKNOWN_MONTH: Dict[str, Any] = {
    "key": UNKNOWN_KEY,
    "month_name": "unknown month",
}


def with_unknown_member(
    df: pl.DataFrame,
    unknown_row: Dict[str, Any],
    schema: Dict[str, pl.DataType],
) -> pl.DataFrame:
    """
    Conform a dimension to its schema and append the unknown member.

    Columns missing from unknown_row are null.
    """
    df = df.select([pl.col(name).cast(dtype) for name, dtype in schema.items()])
    unknown = pl.from_dicts(
        [{name: unknown_row.get(name) for name in schema}],
        schema=schema,
    )
    return pl.concat([df, unknown], how="vertical")


# =============================================================================
# BUILDERS
# =============================================================================

def build_customers_dim(
    customer: pl.DataFrame,
    nation: pl.DataFrame,
    region: pl.DataFrame,
) -> pl.DataFrame:
    """
    Build the customer dimension.

    Each customer is joined to its nation and the nation's region so that
    nation and region names live on the customer row.
    """
    nation_regions = nation.join(
        region,
        left_on="n_regionkey",
        right_on="r_regionkey",
        how="inner",
    ).select([
        pl.col("n_nationkey").alias("nationkey"),
        pl.col("n_name").alias("nation"),
        pl.col("r_name").alias("region"),
    ])

    customers = customer.join(
        nation_regions,
        left_on="c_nationkey",
        right_on="nationkey",
        how="inner",
    ).select([
        pl.col("c_custkey").alias("key"),
        pl.col("c_name").alias("name"),
        pl.col("c_address").alias("address"),
        pl.col("nation"),
        pl.col("region"),
        pl.col("c_phone").alias("phone"),
    ])

    logger.debug("Built customer rows", rows=len(customers), source_rows=len(customer))
    return with_unknown_member(customers, UNKNOWN_CUSTOMER, CUSTOMERS_DIM_SCHEMA)


def build_parts_dim(part: pl.DataFrame) -> pl.DataFrame:
    """Build the part dimension by projecting the part catalog"""
    parts = part.select([
        pl.col("p_partkey").alias("key"),
        pl.col("p_name").alias("name"),
        pl.col("p_mfgr").alias("manufacturer"),
        pl.col("p_brand").alias("brand"),
        pl.col("p_type").alias("type"),
        pl.col("p_size").alias("size"),
        pl.col("p_container").alias("container"),
        pl.col("p_retailprice").alias("price"),
    ])

    return with_unknown_member(parts, UNKNOWN_PART, PARTS_DIM_SCHEMA)


def build_date_dim(
    start: date = CALENDAR_START,
    end: date = CALENDAR_END,
) -> pl.DataFrame:
    """
    Build the date dimension, one row per day from start to end inclusive.

    day_of_week follows the 1=Sunday convention, so the weekend is
    day 1 (Sunday) and day 7 (Saturday).
    """
    dates = date_sequence(start, end, "1d").to_frame()

    days = dates.with_columns(
        # ISO weekday is 1=Monday ... 7=Sunday
        ((pl.col("date").dt.weekday() % 7) + 1).alias("day_of_week"),
    ).select([
        pl.col("date").dt.strftime("%Y%m%d").cast(pl.Int64).alias("key"),
        pl.col("date"),
        pl.col("date").dt.strftime("%A").alias("day_of_week_name"),
        pl.col("day_of_week"),
        pl.col("date").dt.day().alias("day_of_month"),
        pl.col("date").dt.ordinal_day().alias("day_of_year"),
        pl.col("date").dt.week().alias("week_of_year"),
        pl.col("date").dt.strftime("%B").alias("month_name"),
        pl.col("date").dt.month().alias("month_number"),
        ((pl.col("date").dt.month() + 2) // 3).alias("quarter"),
        pl.col("date").dt.year().alias("year"),
        pl.col("day_of_week").is_in([1, 7]).alias("is_weekend"),
    ])

    logger.debug("Built calendar days", rows=len(days), start=str(start), end=str(end))
    return with_unknown_member(days, UNKNOWN_DATE, DATE_DIM_SCHEMA)


def build_month_dim(
    start: date = CALENDAR_START,
    end: date = CALENDAR_END,
) -> pl.DataFrame:
    """
    Build the month dimension, one row per calendar month in range.

    num_days is the distance in days to the first of the next month.
    """
    first_of_month = start.replace(day=1)
    months = date_sequence(first_of_month, end, "1mo").to_frame()

    months = months.select([
        pl.col("date").dt.strftime("%Y%m").cast(pl.Int64).alias("key"),
        pl.col("date"),
        pl.col("date").dt.strftime("%B").alias("month_name"),
        pl.col("date").dt.month().alias("month_number"),
        ((pl.col("date").dt.month() + 2) // 3).alias("quarter"),
        pl.col("date").dt.year().alias("year"),
        (pl.col("date").dt.offset_by("1mo") - pl.col("date"))
        .dt.total_days()
        .alias("num_days"),
    ]).filter(pl.col("key").is_not_null())

    return with_unknown_member(months, UNKNOWN_MONTH, MONTH_DIM_SCHEMA)

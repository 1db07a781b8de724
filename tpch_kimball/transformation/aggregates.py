"""
Periodic Snapshot Builders

Rolls sales_facts up to the daily and monthly aggregate fact tables:
- daily_sales_snapshot: (receipt_date_key, customer_key, part_key)
- monthly_sales_snapshot: (receipt_month_key, customer_key, part_key)

All measures are additive and never null.
"""

import polars as pl
import structlog

from .helpers import UNKNOWN_KEY, month_key_from_date_key_expr

logger = structlog.get_logger(__name__)

DAILY_SNAPSHOT_GRAIN = ["receipt_date_key", "customer_key", "part_key"]
MONTHLY_SNAPSHOT_GRAIN = ["receipt_month_key", "customer_key", "part_key"]
SNAPSHOT_MEASURES = [
    "num_parts",
    "num_parts_returned",
    "gross_sales",
    "sales_returned",
    "net_sales",
]


def _sum_measures() -> list:
    """Null-safe sums of the snapshot measures"""
    return [
        pl.col(measure).fill_null(0.0).sum().cast(pl.Float64).alias(measure)
        for measure in SNAPSHOT_MEASURES
    ]


def build_daily_sales_snapshot(
    sales_facts: pl.DataFrame,
    date_dim: pl.DataFrame,
) -> pl.DataFrame:
    """
    Build the daily sales snapshot.

    Every date_dim key yields at least one row: dates without sales get
    customer_key/part_key -1 and zero measures.
    """
    calendar = date_dim.select(pl.col("key").cast(pl.Int64).alias("receipt_date_key"))

    facts = sales_facts.select([
        pl.col("receipt_date_key"),
        pl.col("customer_key"),
        pl.col("part_key"),
        pl.col("num_parts").fill_null(0.0).alias("num_parts"),
        (pl.col("num_parts").fill_null(0.0) * pl.col("is_returned").fill_null(0))
        .alias("num_parts_returned"),
        pl.col("gross_sales").fill_null(0.0).alias("gross_sales"),
        (pl.col("gross_sales").fill_null(0.0) * pl.col("is_returned").fill_null(0))
        .alias("sales_returned"),
        pl.col("net_sales").fill_null(0.0).alias("net_sales"),
    ])

    # calendar LEFT JOIN facts == facts RIGHT OUTER JOIN calendar
    joined = calendar.join(facts, on="receipt_date_key", how="left").with_columns([
        pl.col("customer_key").fill_null(UNKNOWN_KEY).cast(pl.Int64),
        pl.col("part_key").fill_null(UNKNOWN_KEY).cast(pl.Int64),
    ])

    daily = (
        joined.group_by(DAILY_SNAPSHOT_GRAIN)
        .agg(_sum_measures())
        .sort(DAILY_SNAPSHOT_GRAIN)
        .select(DAILY_SNAPSHOT_GRAIN + SNAPSHOT_MEASURES)
    )

    logger.debug("Built daily snapshot", rows=len(daily), fact_rows=len(sales_facts))
    return daily


def build_monthly_sales_snapshot(daily_snapshot: pl.DataFrame) -> pl.DataFrame:
    """Re-aggregate the daily snapshot by receipt month, customer and part"""
    monthly = (
        daily_snapshot.with_columns([
            month_key_from_date_key_expr("receipt_date_key").cast(pl.Int64).alias("receipt_month_key"),
            pl.col("customer_key").fill_null(UNKNOWN_KEY),
            pl.col("part_key").fill_null(UNKNOWN_KEY),
        ])
        .group_by(MONTHLY_SNAPSHOT_GRAIN)
        .agg(_sum_measures())
        .sort(MONTHLY_SNAPSHOT_GRAIN)
        .select(MONTHLY_SNAPSHOT_GRAIN + SNAPSHOT_MEASURES)
    )

    logger.debug("Built monthly snapshot", rows=len(monthly), daily_rows=len(daily_snapshot))
    return monthly

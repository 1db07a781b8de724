"""
Order-Line Fact Builder

Builds sales_facts at the grain of one row per order line item,
keyed by (order_num, line_item_num).
"""

from typing import Optional

import polars as pl
import structlog

from .helpers import UNKNOWN_KEY, date_key_expr, net_sales_expr

logger = structlog.get_logger(__name__)

SALES_FACTS_SCHEMA = {
    "order_num": pl.Int64,
    "line_item_num": pl.Int32,
    "customer_key": pl.Int64,
    "part_key": pl.Int64,
    "num_parts": pl.Float64,
    "gross_sales": pl.Float64,
    "discount": pl.Float64,
    "tax": pl.Float64,
    "net_sales": pl.Float64,
    "is_fulfilled": pl.Int32,
    "is_returned": pl.Int32,
    "order_date_key": pl.Int64,
    "commit_date_key": pl.Int64,
    "receipt_date_key": pl.Int64,
    "ship_date_key": pl.Int64,
}

SALES_FACTS_GRAIN = ["order_num", "line_item_num"]
DATE_KEY_COLUMNS = ["order_date_key", "commit_date_key", "receipt_date_key", "ship_date_key"]

LINE_STATUS_FINAL = "F"
RETURN_FLAG_RETURNED = "R"


def _resolve_foreign_key(column: str, dimension: pl.DataFrame) -> pl.Expr:
    """Map a key that has no row in the dimension to the unknown member"""
    return (
        pl.when(pl.col(column).is_in(dimension["key"]))
        .then(pl.col(column))
        .otherwise(pl.lit(UNKNOWN_KEY, dtype=pl.Int64))
        .alias(column)
    )


def build_sales_facts(
    lineitem: pl.DataFrame,
    orders: pl.DataFrame,
    customers_dim: Optional[pl.DataFrame] = None,
    parts_dim: Optional[pl.DataFrame] = None,
    date_dim: Optional[pl.DataFrame] = None,
) -> pl.DataFrame:
    """
    Build the order-line sales fact table.

    Line items are joined to their order. Rows without an order key or
    line number cannot form the grain and are dropped. Null foreign keys
    become -1. When dimensions are supplied, keys missing from them
    (e.g. a receipt date outside the calendar) become -1 as well.

    Args:
        lineitem: TPCH lineitem source
        orders: TPCH orders source
        customers_dim: Optional customer dimension for key resolution
        parts_dim: Optional part dimension for key resolution
        date_dim: Optional date dimension for key resolution

    Returns:
        sales_facts DataFrame
    """
    lineitem = lineitem.filter(
        pl.col("l_orderkey").is_not_null() & pl.col("l_linenumber").is_not_null()
    )
    orders = orders.filter(pl.col("o_orderkey").is_not_null())

    sales = lineitem.join(
        orders,
        left_on="l_orderkey",
        right_on="o_orderkey",
        how="inner",
    ).select([
        pl.col("l_orderkey").alias("order_num"),
        pl.col("l_linenumber").alias("line_item_num"),
        pl.col("o_custkey").fill_null(UNKNOWN_KEY).alias("customer_key"),
        pl.col("l_partkey").fill_null(UNKNOWN_KEY).alias("part_key"),
        pl.col("l_quantity").alias("num_parts"),
        pl.col("l_extendedprice").alias("gross_sales"),
        pl.col("l_discount").alias("discount"),
        pl.col("l_tax").alias("tax"),
        (pl.col("l_linestatus") == LINE_STATUS_FINAL).fill_null(False)
        .cast(pl.Int32).alias("is_fulfilled"),
        (pl.col("l_returnflag") == RETURN_FLAG_RETURNED).fill_null(False)
        .cast(pl.Int32).alias("is_returned"),
        date_key_expr("o_orderdate").alias("order_date_key"),
        date_key_expr("l_commitdate").alias("commit_date_key"),
        date_key_expr("l_receiptdate").alias("receipt_date_key"),
        date_key_expr("l_shipdate").alias("ship_date_key"),
    ])

    sales = sales.with_columns(net_sales_expr().alias("net_sales"))
    sales = sales.select([
        pl.col(name).cast(dtype) for name, dtype in SALES_FACTS_SCHEMA.items()
    ])

    # Optional closure against the built dimensions
    resolutions = []
    if customers_dim is not None:
        resolutions.append(_resolve_foreign_key("customer_key", customers_dim))
    if parts_dim is not None:
        resolutions.append(_resolve_foreign_key("part_key", parts_dim))
    if date_dim is not None:
        resolutions.extend(_resolve_foreign_key(col, date_dim) for col in DATE_KEY_COLUMNS)
    if resolutions:
        sales = sales.with_columns(resolutions)

    logger.debug(
        "Built sales facts",
        rows=len(sales),
        lineitem_rows=len(lineitem),
        order_rows=len(orders),
    )
    return sales

"""
TPCH Source Schemas

Column names and polars types of the six TPCH relations read by the
model, in dbgen column order.
"""

from typing import Dict

import polars as pl

TPCH_SCHEMAS: Dict[str, Dict[str, pl.DataType]] = {
    "region": {
        "r_regionkey": pl.Int64,
        "r_name": pl.Utf8,
        "r_comment": pl.Utf8,
    },
    "nation": {
        "n_nationkey": pl.Int64,
        "n_name": pl.Utf8,
        "n_regionkey": pl.Int64,
        "n_comment": pl.Utf8,
    },
    "customer": {
        "c_custkey": pl.Int64,
        "c_name": pl.Utf8,
        "c_address": pl.Utf8,
        "c_nationkey": pl.Int64,
        "c_phone": pl.Utf8,
        "c_acctbal": pl.Float64,
        "c_mktsegment": pl.Utf8,
        "c_comment": pl.Utf8,
    },
    "part": {
        "p_partkey": pl.Int64,
        "p_name": pl.Utf8,
        "p_mfgr": pl.Utf8,
        "p_brand": pl.Utf8,
        "p_type": pl.Utf8,
        "p_size": pl.Int32,
        "p_container": pl.Utf8,
        "p_retailprice": pl.Float64,
        "p_comment": pl.Utf8,
    },
    "orders": {
        "o_orderkey": pl.Int64,
        "o_custkey": pl.Int64,
        "o_orderstatus": pl.Utf8,
        "o_totalprice": pl.Float64,
        "o_orderdate": pl.Date,
        "o_orderpriority": pl.Utf8,
        "o_clerk": pl.Utf8,
        "o_shippriority": pl.Int32,
        "o_comment": pl.Utf8,
    },
    "lineitem": {
        "l_orderkey": pl.Int64,
        "l_partkey": pl.Int64,
        "l_suppkey": pl.Int64,
        "l_linenumber": pl.Int32,
        "l_quantity": pl.Float64,
        "l_extendedprice": pl.Float64,
        "l_discount": pl.Float64,
        "l_tax": pl.Float64,
        "l_returnflag": pl.Utf8,
        "l_linestatus": pl.Utf8,
        "l_shipdate": pl.Date,
        "l_commitdate": pl.Date,
        "l_receiptdate": pl.Date,
        "l_shipinstruct": pl.Utf8,
        "l_shipmode": pl.Utf8,
        "l_comment": pl.Utf8,
    },
}

# Columns the model actually reads; other TPCH columns are optional
REQUIRED_COLUMNS: Dict[str, list] = {
    "region": ["r_regionkey", "r_name"],
    "nation": ["n_nationkey", "n_name", "n_regionkey"],
    "customer": ["c_custkey", "c_name", "c_address", "c_nationkey", "c_phone"],
    "part": [
        "p_partkey", "p_name", "p_mfgr", "p_brand", "p_type",
        "p_size", "p_container", "p_retailprice",
    ],
    "orders": ["o_orderkey", "o_custkey", "o_orderdate"],
    "lineitem": [
        "l_orderkey", "l_partkey", "l_linenumber", "l_quantity",
        "l_extendedprice", "l_discount", "l_tax", "l_returnflag",
        "l_linestatus", "l_shipdate", "l_commitdate", "l_receiptdate",
    ],
}


def conform(table: str, df: pl.DataFrame) -> pl.DataFrame:
    """Cast the known TPCH columns of a frame to their schema types"""
    schema = TPCH_SCHEMAS[table]
    return df.with_columns([
        pl.col(name).cast(dtype) for name, dtype in schema.items() if name in df.columns
    ])

"""
Test Suite Configuration
"""
from datetime import date
from typing import Any, Dict, List

import pytest
import polars as pl

from tpch_kimball.config import Settings
from tpch_kimball.ingestion.tpch_schema import TPCH_SCHEMAS
from tpch_kimball.transformation.transformers import KimballTransformer, ModelBuild


def make_source(table: str, data: Dict[str, List[Any]]) -> pl.DataFrame:
    """Build a TPCH source frame; columns not given are null"""
    schema = TPCH_SCHEMAS[table]
    rows = len(next(iter(data.values())))
    return pl.DataFrame({
        name: pl.Series(name, data.get(name, [None] * rows), dtype=dtype)
        for name, dtype in schema.items()
    })


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def region_df() -> pl.DataFrame:
    return make_source("region", {
        "r_regionkey": [0, 1],
        "r_name": ["AMERICA", "EUROPE"],
        "r_comment": ["hs use ironic requests", "ly final courts"],
    })


@pytest.fixture
def nation_df() -> pl.DataFrame:
    return make_source("nation", {
        "n_nationkey": [0, 1, 2],
        "n_name": ["UNITED STATES", "FRANCE", "CANADA"],
        "n_regionkey": [0, 1, 0],
        "n_comment": ["y final packages", "refully final requests", "eas hang ironic"],
    })


@pytest.fixture
def customer_df() -> pl.DataFrame:
    """Customer 4 points at a nation that does not exist"""
    return make_source("customer", {
        "c_custkey": [1, 2, 3, 4],
        "c_name": ["Customer#000000001", "Customer#000000002", "Customer#000000003", "Customer#000000004"],
        "c_address": ["IVhzIApeRb", "XSTf4NCwDVaW", "MG9kdTD2WBHm", "XxVSJsLAGtn"],
        "c_nationkey": [0, 1, 2, 99],
        "c_phone": ["10-989-741-2988", "11-719-748-3364", "12-768-687-3665", "99-128-190-5944"],
        "c_acctbal": [711.56, 121.65, 7498.12, 2866.83],
        "c_mktsegment": ["BUILDING", "AUTOMOBILE", "AUTOMOBILE", "MACHINERY"],
        "c_comment": ["to the even", "l accounts", "deposits eat", "requests"],
    })


@pytest.fixture
def part_df() -> pl.DataFrame:
    return make_source("part", {
        "p_partkey": [1, 2],
        "p_name": ["goldenrod lavender spring chocolate lace", "blush thistle blue yellow saddle"],
        "p_mfgr": ["Manufacturer#1", "Manufacturer#1"],
        "p_brand": ["Brand#13", "Brand#13"],
        "p_type": ["PROMO BURNISHED COPPER", "LARGE BRUSHED BRASS"],
        "p_size": [7, 1],
        "p_container": ["JUMBO PKG", "LG CASE"],
        "p_retailprice": [901.00, 902.00],
        "p_comment": ["ly. slyly ironi", "lar accounts amo"],
    })


@pytest.fixture
def orders_df() -> pl.DataFrame:
    """
    Order 3 has no customer; order 4's customer has no dimension row.
    """
    return make_source("orders", {
        "o_orderkey": [1, 2, 3, 4],
        "o_custkey": [1, 2, None, 4],
        "o_orderstatus": ["F", "O", "F", "O"],
        "o_totalprice": [1445.0, 209.0, 100.0, 300.0],
        "o_orderdate": [date(1995, 3, 7), date(1998, 12, 20), date(1996, 1, 1), date(1998, 12, 28)],
        "o_orderpriority": ["5-LOW", "1-URGENT", "5-LOW", "2-HIGH"],
        "o_clerk": ["Clerk#000000951", "Clerk#000000880", "Clerk#000000955", "Clerk#000000124"],
        "o_shippriority": [0, 0, 0, 0],
        "o_comment": ["nstructions sleep", "foxes. pending", "sly final accounts", "sleep. courts"],
    })


@pytest.fixture
def lineitem_df() -> pl.DataFrame:
    """
    Line items covering the fact edge cases:
    - (1, 2) is returned
    - (2, 1) is received on a Saturday
    - (3, 1) has no part and no receipt date
    - (4, 1) is committed and received after the calendar ends
    - (2, null) has no line number, (99, 1) has no order
    """
    return make_source("lineitem", {
        "l_orderkey": [1, 1, 2, 3, 4, 2, 99],
        "l_partkey": [1, 2, 1, None, 2, 1, 1],
        "l_suppkey": [1, 2, 1, 1, 2, 1, 1],
        "l_linenumber": [1, 2, 1, 1, 1, None, 1],
        "l_quantity": [10.0, 5.0, 2.0, 1.0, 3.0, 1.0, 1.0],
        "l_extendedprice": [1000.0, 500.0, 200.0, 100.0, 300.0, 50.0, 50.0],
        "l_discount": [0.10, 0.00, 0.05, 0.00, 0.00, 0.00, 0.00],
        "l_tax": [0.05, 0.00, 0.10, 0.00, 0.00, 0.00, 0.00],
        "l_returnflag": ["N", "R", "N", "A", "N", "N", "N"],
        "l_linestatus": ["F", "F", "O", "F", "O", "O", "O"],
        "l_shipdate": [
            date(1995, 3, 10), date(1995, 3, 11), date(1998, 12, 24),
            date(1996, 1, 2), date(1998, 12, 30), date(1998, 12, 24), date(1998, 12, 24),
        ],
        "l_commitdate": [
            date(1995, 4, 1), date(1995, 4, 1), date(1998, 12, 30),
            date(1996, 1, 3), date(1999, 1, 5), date(1998, 12, 30), date(1998, 12, 30),
        ],
        "l_receiptdate": [
            date(1995, 3, 15), date(1995, 3, 15), date(1998, 12, 26),
            None, date(1999, 1, 10), date(1998, 12, 26), date(1998, 12, 26),
        ],
        "l_shipinstruct": ["DELIVER IN PERSON", "NONE", "COLLECT COD", "NONE", "NONE", "NONE", "NONE"],
        "l_shipmode": ["TRUCK", "MAIL", "SHIP", "AIR", "RAIL", "FOB", "FOB"],
        "l_comment": ["egular courts", "ly final dependencies", "riously", "lites", "pending", "even", "odd"],
    })


@pytest.fixture
def tpch_sources(
    region_df, nation_df, customer_df, part_df, orders_df, lineitem_df
) -> Dict[str, pl.DataFrame]:
    """The six TPCH source relations"""
    return {
        "region": region_df,
        "nation": nation_df,
        "customer": customer_df,
        "part": part_df,
        "orders": orders_df,
        "lineitem": lineitem_df,
    }


@pytest.fixture
def model_build(tpch_sources) -> ModelBuild:
    """Model built from tpch_sources without writing output"""
    return KimballTransformer(write_output=False).run(tpch_sources)

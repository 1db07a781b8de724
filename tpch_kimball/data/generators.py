"""
Synthetic TPCH Source Generator

Generates a small TPCH-shaped source set for local refreshes and tests.
Follows the dbgen value rules closely enough for the model:
- the 5 regions and 25 nations of the benchmark
- customers, parts, orders and line items with TPCH column names
- order dates inside the model calendar, ship/commit/receipt offsets
- return flag and line status derived from the dbgen current date
"""

from datetime import date, timedelta
from pathlib import Path
from typing import Dict, Optional

import numpy as np
import polars as pl
import structlog
from faker import Faker

from tpch_kimball.config import get_settings
from tpch_kimball.ingestion.source_loader import FileFormat, write_sources
from tpch_kimball.ingestion.tpch_schema import conform

logger = structlog.get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

REGIONS = ["AFRICA", "AMERICA", "ASIA", "EUROPE", "MIDDLE EAST"]

# (name, regionkey) in nationkey order
NATIONS = [
    ("ALGERIA", 0), ("ARGENTINA", 1), ("BRAZIL", 1), ("CANADA", 1),
    ("EGYPT", 4), ("ETHIOPIA", 0), ("FRANCE", 3), ("GERMANY", 3),
    ("INDIA", 2), ("INDONESIA", 2), ("IRAN", 4), ("IRAQ", 4),
    ("JAPAN", 2), ("JORDAN", 4), ("KENYA", 0), ("MOROCCO", 0),
    ("MOZAMBIQUE", 0), ("PERU", 1), ("CHINA", 2), ("ROMANIA", 3),
    ("SAUDI ARABIA", 4), ("VIETNAM", 2), ("RUSSIA", 3), ("UNITED KINGDOM", 3),
    ("UNITED STATES", 1),
]

MARKET_SEGMENTS = ["AUTOMOBILE", "BUILDING", "FURNITURE", "MACHINERY", "HOUSEHOLD"]
ORDER_PRIORITIES = ["1-URGENT", "2-HIGH", "3-MEDIUM", "4-NOT SPECIFIED", "5-LOW"]
SHIP_INSTRUCTIONS = ["DELIVER IN PERSON", "COLLECT COD", "NONE", "TAKE BACK RETURN"]
SHIP_MODES = ["REG AIR", "AIR", "RAIL", "SHIP", "TRUCK", "MAIL", "FOB"]

TYPE_SYLLABLES = (
    ["STANDARD", "SMALL", "MEDIUM", "LARGE", "ECONOMY", "PROMO"],
    ["ANODIZED", "BURNISHED", "PLATED", "POLISHED", "BRUSHED"],
    ["TIN", "NICKEL", "BRASS", "STEEL", "COPPER"],
)
CONTAINER_SYLLABLES = (
    ["SM", "LG", "MED", "JUMBO", "WRAP"],
    ["CASE", "BOX", "BAG", "JAR", "PKG", "PACK", "CAN", "DRUM"],
)
PART_COLORS = [
    "almond", "antique", "aquamarine", "azure", "beige", "bisque", "black",
    "blanched", "blue", "blush", "brown", "burlywood", "chartreuse", "chiffon",
    "chocolate", "coral", "cornflower", "cream", "cyan", "dark", "deep",
    "dodger", "drab", "firebrick", "forest", "frosted", "gainsboro", "ghost",
    "goldenrod", "green", "grey", "honeydew", "hot", "indian", "ivory", "khaki",
    "lace", "lavender", "lawn", "lemon", "light", "lime", "linen", "magenta",
    "maroon", "medium", "metallic", "midnight", "mint", "misty", "moccasin",
    "navajo", "navy", "olive", "orange", "orchid", "pale", "papaya", "peach",
]

# dbgen's "current date": receipts up to it may be returned, later shipments are open
CURRENT_DATE = date(1995, 6, 17)
# Orders stop early enough for every line to be received inside the calendar
ORDER_DATE_MARGIN_DAYS = 151


def retail_price(partkey: int) -> float:
    """dbgen retail price formula"""
    return (90000 + ((partkey // 10) % 20001) + 100 * (partkey % 1000)) / 100


# =============================================================================
# GENERATOR
# =============================================================================

class TPCHGenerator:
    """
    Generate the six TPCH source relations.

    Sizes follow the benchmark ratios: 4/3 parts and 10 orders per
    customer, 1 to 7 line items per order.

    Example:
        sources = TPCHGenerator(seed=7).generate(n_customers=50)
        sources["lineitem"]
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        calendar_start: Optional[date] = None,
        calendar_end: Optional[date] = None,
    ):
        settings = get_settings()
        self.seed = settings.model.generator_seed if seed is None else seed
        self.calendar_start = calendar_start or settings.model.calendar_start
        self.calendar_end = calendar_end or settings.model.calendar_end

        self.rng = np.random.default_rng(self.seed)
        self.fake = Faker()
        self.fake.seed_instance(self.seed)

    def generate_regions(self) -> pl.DataFrame:
        return pl.DataFrame({
            "r_regionkey": list(range(len(REGIONS))),
            "r_name": REGIONS,
            "r_comment": [self.fake.sentence(nb_words=8) for _ in REGIONS],
        })

    def generate_nations(self) -> pl.DataFrame:
        return pl.DataFrame({
            "n_nationkey": list(range(len(NATIONS))),
            "n_name": [name for name, _ in NATIONS],
            "n_regionkey": [region for _, region in NATIONS],
            "n_comment": [self.fake.sentence(nb_words=8) for _ in NATIONS],
        })

    def generate_customers(self, n: int) -> pl.DataFrame:
        """Generate n customers spread over the 25 nations"""
        keys = np.arange(1, n + 1)
        nationkeys = self.rng.integers(0, len(NATIONS), n)
        phones = [
            f"{nk + 10}-{self.rng.integers(100, 1000)}-{self.rng.integers(100, 1000)}-{self.rng.integers(1000, 10000)}"
            for nk in nationkeys
        ]

        return pl.DataFrame({
            "c_custkey": keys,
            "c_name": [f"Customer#{k:09d}" for k in keys],
            "c_address": [self.fake.street_address() for _ in keys],
            "c_nationkey": nationkeys,
            "c_phone": phones,
            "c_acctbal": np.round(self.rng.uniform(-999.99, 9999.99, n), 2),
            "c_mktsegment": self.rng.choice(MARKET_SEGMENTS, n),
            "c_comment": [self.fake.sentence(nb_words=10) for _ in keys],
        })

    def generate_parts(self, n: int) -> pl.DataFrame:
        """Generate n parts"""
        keys = np.arange(1, n + 1)
        manufacturers = self.rng.integers(1, 6, n)
        brands = manufacturers * 10 + self.rng.integers(1, 6, n)

        return pl.DataFrame({
            "p_partkey": keys,
            "p_name": [" ".join(self.rng.choice(PART_COLORS, 5, replace=False)) for _ in keys],
            "p_mfgr": [f"Manufacturer#{m}" for m in manufacturers],
            "p_brand": [f"Brand#{b}" for b in brands],
            "p_type": [
                " ".join(self.rng.choice(syllables) for syllables in TYPE_SYLLABLES)
                for _ in keys
            ],
            "p_size": self.rng.integers(1, 51, n),
            "p_container": [
                " ".join(self.rng.choice(syllables) for syllables in CONTAINER_SYLLABLES)
                for _ in keys
            ],
            "p_retailprice": [retail_price(int(k)) for k in keys],
            "p_comment": [self.fake.sentence(nb_words=4) for _ in keys],
        })

    def generate_orders(
        self,
        n: int,
        customers: pl.DataFrame,
        parts: pl.DataFrame,
    ) -> Dict[str, pl.DataFrame]:
        """Generate n orders and their line items"""
        last_order_date = self.calendar_end - timedelta(days=ORDER_DATE_MARGIN_DAYS)
        span_days = max((last_order_date - self.calendar_start).days, 0)

        customer_keys = customers["c_custkey"].to_numpy()
        part_keys = parts["p_partkey"].to_numpy()
        prices = dict(zip(parts["p_partkey"].to_list(), parts["p_retailprice"].to_list()))

        orders = []
        lines = []

        for orderkey in range(1, n + 1):
            order_date = self.calendar_start + timedelta(days=int(self.rng.integers(0, span_days + 1)))
            n_lines = int(self.rng.integers(1, 8))
            total_price = 0.0
            statuses = []

            for linenumber in range(1, n_lines + 1):
                partkey = int(self.rng.choice(part_keys))
                quantity = float(self.rng.integers(1, 51))
                extended_price = round(quantity * prices[partkey], 2)
                discount = round(float(self.rng.integers(0, 11)) / 100, 2)
                tax = round(float(self.rng.integers(0, 9)) / 100, 2)

                ship_date = order_date + timedelta(days=int(self.rng.integers(1, 122)))
                commit_date = order_date + timedelta(days=int(self.rng.integers(30, 91)))
                receipt_date = ship_date + timedelta(days=int(self.rng.integers(1, 31)))

                if receipt_date <= CURRENT_DATE:
                    return_flag = "R" if self.rng.random() < 0.5 else "A"
                else:
                    return_flag = "N"
                line_status = "O" if ship_date > CURRENT_DATE else "F"
                statuses.append(line_status)

                total_price += extended_price * (1 + tax) * (1 - discount)
                lines.append({
                    "l_orderkey": orderkey,
                    "l_partkey": partkey,
                    "l_suppkey": int(self.rng.integers(1, 101)),
                    "l_linenumber": linenumber,
                    "l_quantity": quantity,
                    "l_extendedprice": extended_price,
                    "l_discount": discount,
                    "l_tax": tax,
                    "l_returnflag": return_flag,
                    "l_linestatus": line_status,
                    "l_shipdate": ship_date,
                    "l_commitdate": commit_date,
                    "l_receiptdate": receipt_date,
                    "l_shipinstruct": str(self.rng.choice(SHIP_INSTRUCTIONS)),
                    "l_shipmode": str(self.rng.choice(SHIP_MODES)),
                    "l_comment": self.fake.sentence(nb_words=5),
                })

            if all(s == "F" for s in statuses):
                order_status = "F"
            elif all(s == "O" for s in statuses):
                order_status = "O"
            else:
                order_status = "P"

            orders.append({
                "o_orderkey": orderkey,
                "o_custkey": int(self.rng.choice(customer_keys)),
                "o_orderstatus": order_status,
                "o_totalprice": round(total_price, 2),
                "o_orderdate": order_date,
                "o_orderpriority": str(self.rng.choice(ORDER_PRIORITIES)),
                "o_clerk": f"Clerk#{int(self.rng.integers(1, 1001)):09d}",
                "o_shippriority": 0,
                "o_comment": self.fake.sentence(nb_words=6),
            })

        return {
            "orders": pl.DataFrame(orders),
            "lineitem": pl.DataFrame(lines),
        }

    def inject_missing_keys(
        self,
        sources: Dict[str, pl.DataFrame],
        rate: float,
    ) -> Dict[str, pl.DataFrame]:
        """Null out a share of fact foreign keys and dates"""
        def nulls(df: pl.DataFrame, columns: list) -> pl.DataFrame:
            return df.with_columns([
                pl.when(pl.Series(self.rng.random(len(df)) < rate))
                .then(None)
                .otherwise(pl.col(c))
                .alias(c)
                for c in columns
            ])

        sources = dict(sources)
        sources["orders"] = nulls(sources["orders"], ["o_custkey", "o_orderdate"])
        sources["lineitem"] = nulls(
            sources["lineitem"], ["l_partkey", "l_commitdate", "l_receiptdate", "l_shipdate"]
        )
        return sources

    def generate(
        self,
        n_customers: Optional[int] = None,
        missing_key_rate: float = 0.0,
    ) -> Dict[str, pl.DataFrame]:
        """
        Generate the complete TPCH source set.

        Args:
            n_customers: Number of customers; parts and orders scale with it
            missing_key_rate: Share of fact keys and dates set to null

        Returns:
            Source frames keyed by TPCH table name
        """
        n_customers = n_customers or get_settings().model.generator_customers
        n_parts = max(1, n_customers * 4 // 3)
        n_orders = n_customers * 10

        logger.info(
            "Generating synthetic TPCH sources",
            customers=n_customers,
            parts=n_parts,
            orders=n_orders,
            seed=self.seed,
        )

        customers = self.generate_customers(n_customers)
        parts = self.generate_parts(n_parts)
        sources = {
            "region": self.generate_regions(),
            "nation": self.generate_nations(),
            "customer": customers,
            "part": parts,
            **self.generate_orders(n_orders, customers, parts),
        }

        if missing_key_rate > 0:
            sources = self.inject_missing_keys(sources, missing_key_rate)

        sources = {table: conform(table, df) for table, df in sources.items()}
        logger.info("Generation complete", lineitems=len(sources["lineitem"]))
        return sources


def generate_sources(
    output_dir: Optional[str] = None,
    scale: int = 1,
    file_format: FileFormat = FileFormat.TBL,
    seed: Optional[int] = None,
) -> Dict[str, pl.DataFrame]:
    """
    Generate sources and optionally write them as <table>.<format> files.

    Args:
        output_dir: Directory to write to, nothing is written when None
        scale: Multiplier on the configured customers per scale unit
        file_format: Output file format
        seed: Generator seed override
    """
    n_customers = get_settings().model.generator_customers * max(1, scale)
    sources = TPCHGenerator(seed=seed).generate(n_customers)

    if output_dir is not None:
        write_sources(sources, Path(output_dir), file_format)

    return sources

"""
Unit Tests - Periodic Snapshots
"""
from datetime import date

import pytest
import polars as pl

from tpch_kimball.transformation.aggregates import (
    DAILY_SNAPSHOT_GRAIN,
    MONTHLY_SNAPSHOT_GRAIN,
    SNAPSHOT_MEASURES,
    build_daily_sales_snapshot,
    build_monthly_sales_snapshot,
)
from tpch_kimball.transformation.dimensions import build_date_dim
from tpch_kimball.transformation.facts import SALES_FACTS_SCHEMA
from tpch_kimball.transformation.transformers import Relation


def snapshot_row(df: pl.DataFrame, **keys) -> dict:
    condition = pl.lit(True)
    for column, value in keys.items():
        condition = condition & (pl.col(column) == value)
    rows = df.filter(condition).to_dicts()
    assert len(rows) == 1
    return rows[0]


class TestDailySnapshot:
    """Tests for build_daily_sales_snapshot"""

    def test_covers_calendar(self, model_build):
        """Test every date_dim key has a snapshot row"""
        daily = model_build[Relation.DAILY_SALES_SNAPSHOT]
        date_dim = model_build[Relation.DATE_DIM]

        assert date_dim["key"].is_in(daily["receipt_date_key"]).all()

    def test_row_count(self, model_build):
        """Test 2555 empty days plus five sales groups"""
        assert len(model_build[Relation.DAILY_SALES_SNAPSHOT]) == 2560

    def test_empty_day(self, model_build):
        """Test a day without sales gets -1 keys and zero measures"""
        row = snapshot_row(model_build[Relation.DAILY_SALES_SNAPSHOT], receipt_date_key=19950101)

        assert row["customer_key"] == -1
        assert row["part_key"] == -1
        for measure in SNAPSHOT_MEASURES:
            assert row[measure] == 0.0

    def test_day_split_by_part(self, model_build):
        """Test two parts received the same day stay separate"""
        daily = model_build[Relation.DAILY_SALES_SNAPSHOT]

        kept = snapshot_row(daily, receipt_date_key=19950315, customer_key=1, part_key=1)
        assert kept["num_parts"] == 10.0
        assert kept["num_parts_returned"] == 0.0
        assert kept["net_sales"] == pytest.approx(945.0)

        returned = snapshot_row(daily, receipt_date_key=19950315, customer_key=1, part_key=2)
        assert returned["num_parts_returned"] == 5.0
        assert returned["sales_returned"] == 500.0
        assert returned["gross_sales"] == 500.0
        assert returned["net_sales"] == 0.0

    def test_unknown_receipt_date_bucket(self, model_build):
        """Test facts without a resolvable receipt date roll into key -1"""
        rows = model_build[Relation.DAILY_SALES_SNAPSHOT].filter(pl.col("receipt_date_key") == -1)

        assert sorted(rows["part_key"].to_list()) == [-1, 2]
        assert rows["gross_sales"].sum() == pytest.approx(400.0)

    def test_sums_equal_facts(self, model_build):
        """Test snapshot totals equal fact totals"""
        facts = model_build[Relation.SALES_FACTS]
        daily = model_build[Relation.DAILY_SALES_SNAPSHOT]

        assert daily["gross_sales"].sum() == pytest.approx(facts["gross_sales"].sum())
        assert daily["net_sales"].sum() == pytest.approx(facts["net_sales"].sum())
        assert daily["num_parts"].sum() == pytest.approx(facts["num_parts"].sum())
        assert daily["sales_returned"].sum() == pytest.approx(500.0)

    def test_grain_unique_and_sorted(self, model_build):
        """Test one row per grain, ordered by the grain"""
        daily = model_build[Relation.DAILY_SALES_SNAPSHOT]

        assert daily.select(DAILY_SNAPSHOT_GRAIN).is_duplicated().sum() == 0
        assert daily.equals(daily.sort(DAILY_SNAPSHOT_GRAIN))
        assert daily.columns == DAILY_SNAPSHOT_GRAIN + SNAPSHOT_MEASURES

    def test_null_measures_summed_as_zero(self):
        """Test null fact measures do not null the aggregate"""
        date_dim = build_date_dim(date(1995, 3, 15), date(1995, 3, 15))
        facts = pl.DataFrame(
            {
                "order_num": [1, 2],
                "line_item_num": [1, 1],
                "customer_key": [1, 1],
                "part_key": [1, 1],
                "num_parts": [2.0, None],
                "gross_sales": [None, 10.0],
                "discount": [0.0, 0.0],
                "tax": [0.0, 0.0],
                "net_sales": [0.0, 10.0],
                "is_fulfilled": [1, 1],
                "is_returned": [0, 1],
                "order_date_key": [19950301, 19950301],
                "commit_date_key": [19950301, 19950301],
                "receipt_date_key": [19950315, 19950315],
                "ship_date_key": [19950310, 19950310],
            },
            schema=SALES_FACTS_SCHEMA,
        )

        daily = build_daily_sales_snapshot(facts, date_dim)
        row = snapshot_row(daily, receipt_date_key=19950315, customer_key=1)

        assert row["num_parts"] == 2.0
        assert row["gross_sales"] == 10.0
        assert row["sales_returned"] == 10.0
        assert row["num_parts_returned"] == 0.0


class TestMonthlySnapshot:
    """Tests for build_monthly_sales_snapshot"""

    def test_row_count(self, model_build):
        """Test one empty-day row per month plus the sales groups"""
        assert len(model_build[Relation.MONTHLY_SALES_SNAPSHOT]) == 84 + 3 + 2

    def test_rolls_up_days(self, model_build):
        """Test the monthly row equals the sum of its daily rows"""
        monthly = model_build[Relation.MONTHLY_SALES_SNAPSHOT]

        row = snapshot_row(monthly, receipt_month_key=199812, customer_key=2, part_key=1)
        assert row["gross_sales"] == 200.0
        assert row["net_sales"] == pytest.approx(209.0)

    def test_unknown_month_carried(self, model_build):
        """Test receipt key -1 maps to month key -1"""
        monthly = model_build[Relation.MONTHLY_SALES_SNAPSHOT]

        assert monthly.filter(pl.col("receipt_month_key") == -1).height == 2

    def test_month_keys_in_month_dim(self, model_build):
        """Test every month key exists in month_dim"""
        monthly = model_build[Relation.MONTHLY_SALES_SNAPSHOT]
        month_dim = model_build[Relation.MONTH_DIM]

        assert monthly["receipt_month_key"].is_in(month_dim["key"]).all()

    def test_sums_equal_daily(self, model_build):
        """Test monthly totals equal daily totals"""
        daily = model_build[Relation.DAILY_SALES_SNAPSHOT]
        monthly = model_build[Relation.MONTHLY_SALES_SNAPSHOT]

        for measure in SNAPSHOT_MEASURES:
            assert monthly[measure].sum() == pytest.approx(daily[measure].sum())

    def test_grain_unique(self, model_build):
        """Test one row per (month, customer, part)"""
        monthly = model_build[Relation.MONTHLY_SALES_SNAPSHOT]

        assert monthly.select(MONTHLY_SNAPSHOT_GRAIN).is_duplicated().sum() == 0
        assert monthly.columns == MONTHLY_SNAPSHOT_GRAIN + SNAPSHOT_MEASURES

    def test_from_handmade_daily(self):
        """Test rollup of a small daily frame"""
        daily = pl.DataFrame({
            "receipt_date_key": [19950301, 19950331, 19950401, -1],
            "customer_key": [1, 1, 1, -1],
            "part_key": [1, 1, 1, -1],
            "num_parts": [1.0, 2.0, 4.0, 8.0],
            "num_parts_returned": [0.0, 0.0, 0.0, 0.0],
            "gross_sales": [10.0, 20.0, 40.0, 80.0],
            "sales_returned": [0.0, 0.0, 0.0, 0.0],
            "net_sales": [10.0, 20.0, 40.0, 80.0],
        })

        monthly = build_monthly_sales_snapshot(daily)

        assert monthly["receipt_month_key"].to_list() == [-1, 199503, 199504]
        assert monthly["num_parts"].to_list() == [8.0, 3.0, 4.0]

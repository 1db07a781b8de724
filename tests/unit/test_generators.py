"""
Unit Tests - Synthetic TPCH Generator
"""
from datetime import date

import pytest
import polars as pl
from polars.testing import assert_frame_equal

from tpch_kimball.data.generators import (
    CURRENT_DATE,
    NATIONS,
    REGIONS,
    TPCHGenerator,
    generate_sources,
    retail_price,
)
from tpch_kimball.ingestion.source_loader import FileFormat, SourceLoader
from tpch_kimball.ingestion.tpch_schema import TPCH_SCHEMAS
from tpch_kimball.quality.validators import model_passed, validate_model
from tpch_kimball.transformation.transformers import KimballTransformer, Relation


@pytest.fixture(scope="module")
def generated() -> dict:
    return TPCHGenerator(seed=7).generate(n_customers=12)


class TestTPCHGenerator:
    """Tests for TPCHGenerator"""

    def test_tables_and_schemas(self, generated):
        """Test all six relations with TPCH columns"""
        assert set(generated) == set(TPCH_SCHEMAS)
        for table, df in generated.items():
            assert df.columns == list(TPCH_SCHEMAS[table])

    def test_sizes(self, generated):
        """Test benchmark ratios between relations"""
        assert len(generated["region"]) == len(REGIONS) == 5
        assert len(generated["nation"]) == len(NATIONS) == 25
        assert len(generated["customer"]) == 12
        assert len(generated["part"]) == 16
        assert len(generated["orders"]) == 120
        assert 120 <= len(generated["lineitem"]) <= 120 * 7

    def test_keys_reference_parents(self, generated):
        """Test generated foreign keys resolve"""
        assert generated["customer"]["c_nationkey"].is_in(generated["nation"]["n_nationkey"]).all()
        assert generated["orders"]["o_custkey"].is_in(generated["customer"]["c_custkey"]).all()
        assert generated["lineitem"]["l_partkey"].is_in(generated["part"]["p_partkey"]).all()
        assert generated["lineitem"]["l_orderkey"].is_in(generated["orders"]["o_orderkey"]).all()

    def test_dates_inside_calendar(self, generated):
        """Test every line is received before the calendar ends"""
        lineitem = generated["lineitem"]

        assert lineitem["l_receiptdate"].max() <= date(1998, 12, 31)
        assert generated["orders"]["o_orderdate"].min() >= date(1992, 1, 1)
        assert (lineitem["l_receiptdate"] > lineitem["l_shipdate"]).all()

    def test_return_flags(self, generated):
        """Test returns only happen for lines received by the current date"""
        lineitem = generated["lineitem"]

        late = lineitem.filter(pl.col("l_receiptdate") > CURRENT_DATE)
        assert late["l_returnflag"].unique().to_list() == ["N"]
        assert set(lineitem["l_linestatus"].unique().to_list()) <= {"F", "O"}

    def test_measures(self, generated):
        """Test TPCH measure ranges"""
        lineitem = generated["lineitem"]

        assert lineitem["l_quantity"].is_between(1, 50).all()
        assert lineitem["l_discount"].is_between(0.0, 0.10).all()
        assert lineitem["l_tax"].is_between(0.0, 0.08).all()

    def test_retail_price(self):
        """Test the dbgen retail price formula"""
        assert retail_price(1) == 901.00
        assert retail_price(2) == 902.00
        assert retail_price(10) == 910.01

    def test_seeded(self):
        """Test the same seed gives the same sources"""
        first = TPCHGenerator(seed=3).generate(n_customers=4)
        second = TPCHGenerator(seed=3).generate(n_customers=4)

        for table in first:
            assert_frame_equal(first[table], second[table])

    def test_missing_keys(self):
        """Test null key injection"""
        sources = TPCHGenerator(seed=5).generate(n_customers=10, missing_key_rate=0.5)

        assert sources["orders"]["o_custkey"].null_count() > 0
        assert sources["lineitem"]["l_partkey"].null_count() > 0


class TestGeneratedModel:
    """Tests building the model from generated sources"""

    def test_generated_model_validates(self, generated):
        """Test the model built from generated sources passes validation"""
        build = KimballTransformer(write_output=False).run(generated)

        assert model_passed(validate_model(build))
        assert len(build[Relation.SALES_FACTS]) == len(generated["lineitem"])

    def test_model_with_missing_keys_validates(self):
        """Test null keys end up on the unknown members"""
        sources = TPCHGenerator(seed=5).generate(n_customers=10, missing_key_rate=0.2)
        build = KimballTransformer(write_output=False).run(sources)

        facts = build[Relation.SALES_FACTS]
        assert facts.filter(pl.col("customer_key") == -1).height > 0
        assert model_passed(validate_model(build))

    def test_generate_sources_writes_files(self, tmp_path):
        """Test generated files are readable by the loader"""
        sources = generate_sources(str(tmp_path), scale=1, file_format=FileFormat.TBL)

        loaded, _ = SourceLoader().load_directory(tmp_path, FileFormat.TBL)

        for table in sources:
            assert_frame_equal(loaded[table], sources[table])

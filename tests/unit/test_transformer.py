"""
Unit Tests - Model Transformer
"""
from datetime import date

import pytest
import polars as pl

from tpch_kimball.transformation.transformers import (
    DEPENDENCY_ORDER,
    KimballTransformer,
    ModelBuildError,
    Relation,
)


class TestKimballTransformer:
    """Tests for KimballTransformer"""

    def test_builds_every_relation(self, model_build):
        """Test all seven relations are produced"""
        assert list(model_build.relations) == DEPENDENCY_ORDER
        assert set(model_build.results) == set(Relation)

    def test_results_record_rows(self, model_build):
        """Test each TransformResult matches its frame"""
        for relation, result in model_build.results.items():
            assert result.output_rows == len(model_build[relation])
            assert result.errors == []
            assert result.output_path is None

        assert model_build.results[Relation.SALES_FACTS].input_rows == 7
        assert model_build.total_rows == sum(len(df) for df in model_build.relations.values())

    def test_lookup_by_name(self, model_build):
        """Test relations can be fetched by their table name"""
        assert model_build["sales_facts"].equals(model_build[Relation.SALES_FACTS])

    def test_writes_parquet(self, tpch_sources, tmp_path):
        """Test every relation is written as <relation>.parquet"""
        build = KimballTransformer(output_path=str(tmp_path)).run(tpch_sources)

        for relation in Relation:
            path = tmp_path / f"{relation.value}.parquet"
            assert path.exists()
            assert build.results[relation].output_path == str(path)
            assert pl.read_parquet(path).equals(build[relation])

    def test_rerun_replaces_output(self, tpch_sources, tmp_path):
        """Test a second refresh overwrites the first"""
        transformer = KimballTransformer(output_path=str(tmp_path))
        transformer.run(tpch_sources)

        sources = dict(tpch_sources)
        sources["lineitem"] = tpch_sources["lineitem"].head(1)
        transformer.run(sources)

        assert len(pl.read_parquet(tmp_path / "sales_facts.parquet")) == 1

    def test_calendar_override(self, tpch_sources):
        """Test a shorter calendar resolves out-of-range receipts to -1"""
        build = KimballTransformer(
            write_output=False,
            calendar_start=date(1995, 1, 1),
            calendar_end=date(1995, 12, 31),
        ).run(tpch_sources)

        assert len(build[Relation.DATE_DIM]) == 365 + 1
        assert len(build[Relation.MONTH_DIM]) == 12 + 1
        facts = build[Relation.SALES_FACTS]
        assert facts.filter(pl.col("receipt_date_key") == -1).height == 3

    def test_without_key_resolution(self, tpch_sources):
        """Test facts keep unresolved keys when resolution is off"""
        build = KimballTransformer(write_output=False, resolve_foreign_keys=False).run(tpch_sources)

        assert 4 in build[Relation.SALES_FACTS]["customer_key"].to_list()

    def test_missing_source(self, tpch_sources):
        """Test a missing source table stops the run"""
        sources = dict(tpch_sources)
        del sources["orders"]

        with pytest.raises(ModelBuildError, match="orders"):
            KimballTransformer(write_output=False).run(sources)

    def test_failing_stage(self, tpch_sources):
        """Test a failing stage raises and records its error"""
        sources = dict(tpch_sources)
        sources["lineitem"] = tpch_sources["lineitem"].drop("l_quantity")
        transformer = KimballTransformer(write_output=False)

        with pytest.raises(ModelBuildError) as exc_info:
            transformer.run(sources)

        assert exc_info.value.relation == Relation.SALES_FACTS
        assert "sales_facts" in str(exc_info.value)

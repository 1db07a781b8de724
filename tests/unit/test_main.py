"""
Unit Tests - Command Line
"""
import polars as pl

from tpch_kimball.main import build_parser, main
from tpch_kimball.transformation.transformers import Relation


class TestCommandLine:
    """Tests for the tpch-kimball command"""

    def test_parser_defaults(self):
        """Test defaults come from settings"""
        args = build_parser().parse_args([])

        assert args.file_format == "tbl"
        assert args.scale == 1
        assert not args.generate
        assert not args.publish

    def test_generate_and_build(self, tmp_path):
        """Test a refresh from generated sources"""
        source = tmp_path / "tpch"
        output = tmp_path / "curated"

        code = main([
            "--source", str(source),
            "--output", str(output),
            "--generate",
            "--format", "parquet",
            "--log-level", "WARNING",
        ])

        assert code == 0
        assert (source / "lineitem.parquet").exists()
        for relation in Relation:
            assert (output / f"{relation.value}.parquet").exists()
        assert len(pl.read_parquet(output / "date_dim.parquet")) == 2557 + 1

    def test_build_from_existing_sources(self, tpch_sources, tmp_path):
        """Test a refresh from CSV sources"""
        from tpch_kimball.ingestion.source_loader import FileFormat, write_sources

        write_sources(tpch_sources, tmp_path / "tpch", FileFormat.CSV)

        code = main([
            "--source", str(tmp_path / "tpch"),
            "--format", "csv",
            "--output", str(tmp_path / "curated"),
            "--log-level", "WARNING",
        ])

        assert code == 0
        assert len(pl.read_parquet(tmp_path / "curated" / "sales_facts.parquet")) == 5

    def test_missing_sources(self, tmp_path):
        """Test an empty source directory exits non-zero"""
        code = main([
            "--source", str(tmp_path),
            "--output", str(tmp_path / "curated"),
            "--log-level", "WARNING",
        ])

        assert code == 1

"""
Unit Tests - Refresh Workflow
"""
import pytest
from prefect.testing.utilities import prefect_test_harness

from tpch_kimball.database.connection import close_database, count_rows, init_database
from tpch_kimball.ingestion.source_loader import FileFormat, write_sources
from workflows.refresh_model import refresh_sales_model


@pytest.fixture(autouse=True, scope="module")
def prefect_backend():
    with prefect_test_harness():
        yield


class TestRefreshFlow:
    """Tests for the refresh_sales_model flow"""

    async def test_refresh_without_publish(self, tpch_sources, tmp_path):
        """Test the flow builds and validates from source files"""
        write_sources(tpch_sources, tmp_path / "tpch", FileFormat.PARQUET)

        result = await refresh_sales_model(
            source_dir=str(tmp_path / "tpch"),
            file_format="parquet",
            output_dir=str(tmp_path / "curated"),
        )

        assert result["status"] == "success"
        assert result["published"] is False
        assert result["relations"]["sales_facts"] == 5
        assert result["validation"]["passed"] is True
        assert (tmp_path / "curated" / "monthly_sales_snapshot.parquet").exists()

    async def test_refresh_and_publish(self, tpch_sources, tmp_path):
        """Test the flow publishes a valid model"""
        write_sources(tpch_sources, tmp_path / "tpch", FileFormat.CSV)
        url = f"sqlite+aiosqlite:///{tmp_path / 'warehouse.db'}"

        result = await refresh_sales_model(
            source_dir=str(tmp_path / "tpch"),
            file_format="csv",
            output_dir=str(tmp_path / "curated"),
            publish=True,
            database_url=url,
        )

        assert result["published"] is True
        assert result["inserted"]["sales_facts"] == 5

        await init_database(url)
        try:
            counts = await count_rows()
        finally:
            await close_database()
        assert counts["date_dim"] == 2557 + 1

"""
Prefect Workflow Orchestration - Sales Model Refresh

Full refresh of the TPCH sales star schema:
- Load (or generate) the six TPCH source relations
- Build dimensions, facts and snapshots
- Validate the model
- Publish to the warehouse when validation passes
"""

from typing import Dict, Optional

import polars as pl
from prefect import flow, task, get_run_logger
from prefect.cache_policies import NONE

from tpch_kimball.config import get_settings
from tpch_kimball.data.generators import generate_sources
from tpch_kimball.database.connection import (
    close_database,
    create_tables,
    init_database,
    publish_model,
)
from tpch_kimball.ingestion.source_loader import FileFormat, SourceLoader
from tpch_kimball.quality.validators import model_passed, validate_model
from tpch_kimball.transformation.transformers import KimballTransformer, ModelBuild


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="load_sources",
    description="Load TPCH source relations from a directory",
    retries=3,
    retry_delay_seconds=60,
    cache_policy=NONE,
)
def load_sources(source_dir: str, file_format: str = "tbl") -> Dict[str, pl.DataFrame]:
    """Load the six TPCH relations"""
    logger = get_run_logger()

    loader = SourceLoader()
    sources, results = loader.load_directory(source_dir, FileFormat(file_format))

    rows = sum(r.rows_loaded for r in results)
    logger.info(f"Source load complete: {len(results)} relations, {rows} rows")
    return sources


@task(
    name="generate_sources",
    description="Generate synthetic TPCH sources",
    cache_policy=NONE,
)
def generate_synthetic_sources(
    source_dir: Optional[str],
    scale: int = 1,
    file_format: str = "tbl",
) -> Dict[str, pl.DataFrame]:
    """Generate sources and write them where load_sources would read them"""
    logger = get_run_logger()

    sources = generate_sources(source_dir, scale=scale, file_format=FileFormat(file_format))

    logger.info(f"Generated {len(sources['lineitem'])} line items at scale {scale}")
    return sources


@task(
    name="build_model",
    description="Build dimensions, facts and snapshots",
    cache_policy=NONE,
)
def build_model(sources: Dict[str, pl.DataFrame], output_dir: Optional[str] = None) -> ModelBuild:
    """Run the model transformer"""
    logger = get_run_logger()

    transformer = KimballTransformer(output_path=output_dir)
    build = transformer.run(sources)

    for relation, result in build.results.items():
        logger.info(f"{relation.value}: {result.input_rows} -> {result.output_rows} rows")

    return build


@task(
    name="validate_model",
    description="Run data quality validations on every relation",
    cache_policy=NONE,
)
def validate_built_model(build: ModelBuild) -> dict:
    """Validate every relation and summarize"""
    logger = get_run_logger()

    results = validate_model(build)

    for relation, result in results.items():
        logger.info(
            f"Validation {relation.value} {result.status.value}: "
            f"{result.passed_checks}/{result.total_checks} checks passed"
        )
        for check in result.failures:
            logger.warning(f"{relation.value}.{check.name}: {check.message}")

    return {
        "passed": model_passed(results),
        "relations": {
            relation.value: {
                "status": result.status.value,
                "total_checks": result.total_checks,
                "passed_checks": result.passed_checks,
                "failed_checks": result.failed_checks,
                "success_rate": result.success_rate,
            }
            for relation, result in results.items()
        },
    }


@task(
    name="publish_model",
    description="Replace the warehouse tables with the built model",
    retries=2,
    retry_delay_seconds=30,
    cache_policy=NONE,
)
async def publish_to_warehouse(build: ModelBuild, database_url: Optional[str] = None) -> Dict[str, int]:
    """Full-refresh publish in one transaction"""
    logger = get_run_logger()

    await init_database(database_url)
    try:
        await create_tables()
        inserted = await publish_model(build)
    finally:
        await close_database()

    logger.info(f"Published {sum(inserted.values())} rows to {len(inserted)} tables")
    return inserted


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="refresh_sales_model",
    description="Full refresh of the TPCH sales star schema",
)
async def refresh_sales_model(
    source_dir: Optional[str] = None,
    file_format: Optional[str] = None,
    output_dir: Optional[str] = None,
    generate: bool = False,
    scale: int = 1,
    publish: bool = False,
    database_url: Optional[str] = None,
) -> dict:
    """
    Sales model refresh pipeline.

    Steps:
    1. Load or generate TPCH sources
    2. Build the seven relations
    3. Validate the model
    4. Publish to the warehouse (skipped when validation failed)
    """
    logger = get_run_logger()
    settings = get_settings()

    source_dir = source_dir or settings.data_lake.source_path
    file_format = file_format or settings.data_lake.source_format

    logger.info(f"Starting sales model refresh from {source_dir}")

    if generate:
        sources = generate_synthetic_sources(source_dir, scale=scale, file_format=file_format)
    else:
        sources = load_sources(source_dir, file_format=file_format)

    build = build_model(sources, output_dir=output_dir)
    validation = validate_built_model(build)

    results = {
        "relations": {r.value: res.output_rows for r, res in build.results.items()},
        "validation": validation,
        "published": False,
    }

    if publish:
        if not validation["passed"]:
            logger.error("Validation failed, warehouse left unchanged")
            results["status"] = "failed"
            return results
        results["inserted"] = await publish_to_warehouse(build, database_url)
        results["published"] = True

    results["status"] = "success" if validation["passed"] else "failed"
    logger.info(f"Sales model refresh {results['status']}")
    return results


# =============================================================================
# DEPLOYMENT CONFIGURATION
# =============================================================================

if __name__ == "__main__":
    import asyncio

    asyncio.run(refresh_sales_model())

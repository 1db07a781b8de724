"""
Command Line Entry Point

Runs a full sales model refresh without a Prefect server.
Usage:
    tpch-kimball --source data/tpch --format tbl
    tpch-kimball --source data/tpch --generate --scale 2
    tpch-kimball --source data/tpch --publish
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import structlog

from tpch_kimball.config import get_settings
from tpch_kimball.config.logging import configure_logging
from tpch_kimball.data.generators import generate_sources
from tpch_kimball.database.connection import (
    close_database,
    create_tables,
    init_database,
    publish_model,
)
from tpch_kimball.ingestion.source_loader import FileFormat, SourceLoadError, SourceLoader
from tpch_kimball.quality.validators import model_passed, validate_model
from tpch_kimball.transformation.transformers import KimballTransformer, ModelBuildError

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        prog="tpch-kimball",
        description="Build the TPCH sales star schema",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tpch-kimball --source data/tpch
  tpch-kimball --source data/tpch --format parquet --output data/curated
  tpch-kimball --source data/tpch --generate --scale 2 --publish
        """,
    )
    parser.add_argument(
        "--source",
        default=settings.data_lake.source_path,
        help=f"Directory holding the TPCH source files (default: {settings.data_lake.source_path})",
    )
    parser.add_argument(
        "--format",
        dest="file_format",
        choices=[f.value for f in FileFormat],
        default=settings.data_lake.source_format,
        help=f"Source file format (default: {settings.data_lake.source_format})",
    )
    parser.add_argument(
        "--output",
        default=settings.data_lake.curated_path,
        help=f"Directory receiving <relation>.parquet files (default: {settings.data_lake.curated_path})",
    )
    parser.add_argument(
        "--generate",
        action="store_true",
        help="Generate synthetic sources into --source before building",
    )
    parser.add_argument(
        "--scale",
        type=int,
        default=1,
        help="Synthetic source scale, used with --generate (default: 1)",
    )
    parser.add_argument(
        "--publish",
        action="store_true",
        help="Replace the warehouse tables when validation passes",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


async def publish(build) -> None:
    await init_database()
    try:
        await create_tables()
        await publish_model(build)
    finally:
        await close_database()


def run(args: argparse.Namespace) -> int:
    """Run one refresh, returning the process exit code"""
    file_format = FileFormat(args.file_format)

    try:
        if args.generate:
            sources = generate_sources(args.source, scale=args.scale, file_format=file_format)
        else:
            sources, _ = SourceLoader().load_directory(args.source, file_format)
    except SourceLoadError as e:
        logger.error("Could not read sources", source=args.source, error=str(e))
        return 1

    try:
        build = KimballTransformer(output_path=args.output).run(sources)
    except ModelBuildError as e:
        logger.error("Model build failed", relation=e.relation.value, error=str(e))
        return 1

    results = validate_model(build)
    for relation, result in results.items():
        logger.info(
            "Relation validated",
            relation=relation.value,
            status=result.status.value,
            rows=build.results[relation].output_rows,
            failed_checks=[c.name for c in result.failures],
        )

    if not model_passed(results):
        logger.error("Model failed validation", published=False)
        return 1

    if args.publish:
        asyncio.run(publish(build))

    logger.info("Refresh complete", output=args.output, published=args.publish)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())

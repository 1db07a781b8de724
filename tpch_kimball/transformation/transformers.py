"""
Model Transformer

Orchestrates the dimension, fact and snapshot builders in dependency
order and writes every relation to the curated zone.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import polars as pl
import structlog

from tpch_kimball.config import get_settings
from .aggregates import build_daily_sales_snapshot, build_monthly_sales_snapshot
from .dimensions import (
    build_customers_dim,
    build_date_dim,
    build_month_dim,
    build_parts_dim,
)
from .facts import build_sales_facts

logger = structlog.get_logger(__name__)


class Relation(str, Enum):
    """Relations produced by the model"""
    CUSTOMERS_DIM = "customers_dim"
    PARTS_DIM = "parts_dim"
    DATE_DIM = "date_dim"
    MONTH_DIM = "month_dim"
    SALES_FACTS = "sales_facts"
    DAILY_SALES_SNAPSHOT = "daily_sales_snapshot"
    MONTHLY_SALES_SNAPSHOT = "monthly_sales_snapshot"


# Leaves first
DEPENDENCY_ORDER: List[Relation] = [
    Relation.CUSTOMERS_DIM,
    Relation.PARTS_DIM,
    Relation.DATE_DIM,
    Relation.MONTH_DIM,
    Relation.SALES_FACTS,
    Relation.DAILY_SALES_SNAPSHOT,
    Relation.MONTHLY_SALES_SNAPSHOT,
]

SOURCE_TABLES = ["customer", "nation", "region", "part", "orders", "lineitem"]


class ModelBuildError(RuntimeError):
    """A stage of the model failed; downstream stages were not run"""

    def __init__(self, relation: Relation, message: str):
        self.relation = relation
        super().__init__(f"{relation.value}: {message}")


@dataclass
class TransformResult:
    """Result of building one relation"""
    relation: Relation
    input_rows: int
    output_rows: int
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    output_path: Optional[str] = None
    errors: List[str] = field(default_factory=list)


@dataclass
class ModelBuild:
    """All relations of one refresh with their build results"""
    relations: Dict[Relation, pl.DataFrame] = field(default_factory=dict)
    results: Dict[Relation, TransformResult] = field(default_factory=dict)

    def __getitem__(self, relation: Relation) -> pl.DataFrame:
        return self.relations[Relation(relation)]

    @property
    def total_rows(self) -> int:
        return sum(r.output_rows for r in self.results.values())

    @property
    def duration_seconds(self) -> float:
        return sum(r.duration_seconds for r in self.results.values())


class KimballTransformer:
    """
    Sales model build orchestrator.

    Runs the four dimension builders, then sales_facts, then the daily
    and monthly snapshots. Each stage consumes only completed upstream
    relations; a failing stage stops the run.

    Example:
        transformer = KimballTransformer()
        build = transformer.run(sources)
        build[Relation.DAILY_SALES_SNAPSHOT]
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        write_output: bool = True,
        calendar_start: Optional[date] = None,
        calendar_end: Optional[date] = None,
        resolve_foreign_keys: bool = True,
    ):
        settings = get_settings()
        self.output_path = Path(output_path or settings.data_lake.curated_path)
        self.write_output = write_output
        self.calendar_start = calendar_start or settings.model.calendar_start
        self.calendar_end = calendar_end or settings.model.calendar_end
        self.resolve_foreign_keys = resolve_foreign_keys

        if self.write_output:
            self.output_path.mkdir(parents=True, exist_ok=True)

    def _write_output(self, df: pl.DataFrame, relation: Relation) -> str:
        """Write a relation to the curated zone, replacing the previous refresh"""
        output_file = self.output_path / f"{relation.value}.parquet"

        df.write_parquet(output_file)
        logger.info("Relation written", relation=relation.value, rows=len(df), path=str(output_file))

        return str(output_file)

    def _run_stage(
        self,
        build: ModelBuild,
        relation: Relation,
        builder: Callable[..., pl.DataFrame],
        *inputs: Any,
        input_rows: int = 0,
        **kwargs: Any,
    ) -> pl.DataFrame:
        """Run one builder, record its result and write its output"""
        started_at = datetime.utcnow()
        errors: List[str] = []
        output_file = None
        df = None

        logger.info("Building relation", relation=relation.value, input_rows=input_rows)

        try:
            df = builder(*inputs, **kwargs)
            if self.write_output:
                output_file = self._write_output(df, relation)
        except Exception as e:
            logger.error("Relation build failed", relation=relation.value, error=str(e))
            errors.append(str(e))

        completed_at = datetime.utcnow()
        build.results[relation] = TransformResult(
            relation=relation,
            input_rows=input_rows,
            output_rows=len(df) if df is not None else 0,
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=(completed_at - started_at).total_seconds(),
            output_path=output_file,
            errors=errors,
        )

        if errors:
            raise ModelBuildError(relation, errors[0])

        build.relations[relation] = df
        return df

    def build_dimensions(self, sources: Dict[str, pl.DataFrame], build: ModelBuild) -> None:
        """Build the four dimensions; they have no dependency on each other"""
        self._run_stage(
            build, Relation.CUSTOMERS_DIM, build_customers_dim,
            sources["customer"], sources["nation"], sources["region"],
            input_rows=len(sources["customer"]),
        )
        self._run_stage(
            build, Relation.PARTS_DIM, build_parts_dim,
            sources["part"],
            input_rows=len(sources["part"]),
        )
        self._run_stage(
            build, Relation.DATE_DIM, build_date_dim,
            self.calendar_start, self.calendar_end,
        )
        self._run_stage(
            build, Relation.MONTH_DIM, build_month_dim,
            self.calendar_start, self.calendar_end,
        )

    def build_facts(self, sources: Dict[str, pl.DataFrame], build: ModelBuild) -> None:
        """Build sales_facts and roll it up to the daily and monthly snapshots"""
        dimensions = {}
        if self.resolve_foreign_keys:
            dimensions = {
                "customers_dim": build[Relation.CUSTOMERS_DIM],
                "parts_dim": build[Relation.PARTS_DIM],
                "date_dim": build[Relation.DATE_DIM],
            }

        sales_facts = self._run_stage(
            build, Relation.SALES_FACTS, build_sales_facts,
            sources["lineitem"], sources["orders"],
            input_rows=len(sources["lineitem"]),
            **dimensions,
        )
        daily = self._run_stage(
            build, Relation.DAILY_SALES_SNAPSHOT, build_daily_sales_snapshot,
            sales_facts, build[Relation.DATE_DIM],
            input_rows=len(sales_facts),
        )
        self._run_stage(
            build, Relation.MONTHLY_SALES_SNAPSHOT, build_monthly_sales_snapshot,
            daily,
            input_rows=len(daily),
        )

    def run(self, sources: Dict[str, pl.DataFrame]) -> ModelBuild:
        """
        Run the full model refresh.

        Args:
            sources: TPCH source frames keyed by table name

        Returns:
            ModelBuild with every relation and its TransformResult

        Raises:
            ModelBuildError: a source table is missing or a stage failed
        """
        missing = [name for name in SOURCE_TABLES if name not in sources]
        if missing:
            raise ModelBuildError(Relation.CUSTOMERS_DIM, f"missing source tables: {missing}")

        logger.info(
            "Starting model refresh",
            calendar_start=str(self.calendar_start),
            calendar_end=str(self.calendar_end),
        )

        build = ModelBuild()
        self.build_dimensions(sources, build)
        self.build_facts(sources, build)

        logger.info(
            "Model refresh complete",
            relations=len(build.relations),
            total_rows=build.total_rows,
            duration=f"{build.duration_seconds:.2f}s",
        )

        return build

"""
TPCH Source Loader

Reads the six TPCH source relations from a directory.
Supports:
- dbgen .tbl files (pipe-delimited, no header, trailing separator)
- CSV files with a header row
- Parquet files
- Required-column validation and type conformance
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import hashlib

import polars as pl
import structlog
from pydantic import BaseModel

from .tpch_schema import REQUIRED_COLUMNS, TPCH_SCHEMAS, conform

logger = structlog.get_logger(__name__)

TBL_SEPARATOR = "|"


class FileFormat(str, Enum):
    """Supported source file formats"""
    TBL = "tbl"
    CSV = "csv"
    PARQUET = "parquet"


class LoadStatus(str, Enum):
    """Source load status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class SourceLoadError(ValueError):
    """A source relation could not be read"""


@dataclass
class SourceFileConfig:
    """Configuration for reading one source relation"""
    table: str
    file_path: Union[str, Path]
    file_format: FileFormat
    encoding: str = "utf8"
    null_values: List[str] = field(default_factory=lambda: ["", "NULL", "null", "None", "NA", "N/A"])


class LoadResult(BaseModel):
    """Result of a source load operation"""
    table: str
    file_path: str
    status: LoadStatus
    rows_loaded: int = 0
    error_message: Optional[str] = None
    load_duration_seconds: float = 0
    started_at: datetime
    completed_at: Optional[datetime] = None
    file_hash: Optional[str] = None


class SourceLoader:
    """
    TPCH source relation loader.

    Example:
        loader = SourceLoader()
        sources, results = loader.load_directory("data/tpch", FileFormat.TBL)
        sources["lineitem"]
    """

    def __init__(self, validate_columns: bool = True):
        self.validate_columns = validate_columns

    def _compute_file_hash(self, file_path: Path) -> str:
        """Compute MD5 hash of file for audit"""
        hash_md5 = hashlib.md5()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(4096), b""):
                hash_md5.update(chunk)
        return hash_md5.hexdigest()

    def _has_trailing_separator(self, file_path: Path, encoding: str) -> bool:
        """dbgen terminates every row with the separator"""
        with open(file_path, "r", encoding="utf-8" if encoding == "utf8" else encoding) as f:
            first_line = f.readline().rstrip("\r\n")
        return first_line.endswith(TBL_SEPARATOR)

    def _read_tbl(self, config: SourceFileConfig) -> pl.DataFrame:
        """Read a dbgen .tbl file"""
        schema = dict(TPCH_SCHEMAS[config.table])
        trailing = self._has_trailing_separator(Path(config.file_path), config.encoding)
        if trailing:
            schema["_trailing"] = pl.Utf8

        df = pl.read_csv(
            config.file_path,
            separator=TBL_SEPARATOR,
            has_header=False,
            schema=schema,
            encoding=config.encoding,
            null_values=config.null_values,
            quote_char=None,
        )
        return df.drop("_trailing") if trailing else df

    def _read_csv(self, config: SourceFileConfig) -> pl.DataFrame:
        """Read a CSV file with a header row"""
        header = pl.read_csv(config.file_path, n_rows=0, encoding=config.encoding).columns
        overrides = {
            name: dtype for name, dtype in TPCH_SCHEMAS[config.table].items() if name in header
        }
        return pl.read_csv(
            config.file_path,
            has_header=True,
            encoding=config.encoding,
            null_values=config.null_values,
            schema_overrides=overrides,
        )

    def _read_parquet(self, config: SourceFileConfig) -> pl.DataFrame:
        """Read a Parquet file"""
        return pl.read_parquet(config.file_path)

    def _read_file(self, config: SourceFileConfig) -> pl.DataFrame:
        """Read file based on format"""
        readers = {
            FileFormat.TBL: self._read_tbl,
            FileFormat.CSV: self._read_csv,
            FileFormat.PARQUET: self._read_parquet,
        }
        reader = readers.get(config.file_format)
        if not reader:
            raise SourceLoadError(f"Unsupported file format: {config.file_format}")
        return reader(config)

    def _validate_columns(self, df: pl.DataFrame, table: str) -> List[str]:
        """Return the required TPCH columns missing from a frame"""
        return [c for c in REQUIRED_COLUMNS[table] if c not in df.columns]

    def read(self, config: SourceFileConfig) -> Tuple[Optional[pl.DataFrame], LoadResult]:
        """
        Read one source relation.

        Failures are recorded on the LoadResult and the frame is None.
        """
        file_path = Path(config.file_path)
        started_at = datetime.utcnow()

        result = LoadResult(
            table=config.table,
            file_path=str(file_path),
            status=LoadStatus.RUNNING,
            started_at=started_at,
        )
        df = None

        logger.info("Loading source relation", table=config.table, file=str(file_path))

        try:
            if config.table not in TPCH_SCHEMAS:
                raise SourceLoadError(f"Unknown TPCH table: {config.table}")
            if not file_path.exists():
                raise SourceLoadError(f"File not found: {file_path}")

            result.file_hash = self._compute_file_hash(file_path)
            df = self._read_file(config)

            if self.validate_columns:
                missing = self._validate_columns(df, config.table)
                if missing:
                    raise SourceLoadError(f"{config.table} is missing columns: {missing}")

            df = conform(config.table, df)

            result.status = LoadStatus.COMPLETED
            result.rows_loaded = len(df)

        except Exception as e:
            df = None
            result.status = LoadStatus.FAILED
            result.error_message = str(e)
            logger.error("Source load failed", table=config.table, error=str(e), file=str(file_path))

        result.completed_at = datetime.utcnow()
        result.load_duration_seconds = (result.completed_at - started_at).total_seconds()

        if result.status == LoadStatus.COMPLETED:
            logger.info(
                "Source load completed",
                table=config.table,
                rows_loaded=result.rows_loaded,
                duration_seconds=result.load_duration_seconds,
            )

        return df, result

    def load_directory(
        self,
        directory: Union[str, Path],
        file_format: FileFormat,
        tables: Optional[List[str]] = None,
    ) -> Tuple[Dict[str, pl.DataFrame], List[LoadResult]]:
        """
        Load every TPCH relation from a directory.

        Files are expected as <table>.<format>, e.g. lineitem.tbl.

        Raises:
            SourceLoadError: one or more relations failed to load
        """
        directory = Path(directory)
        file_format = FileFormat(file_format)
        tables = tables or list(TPCH_SCHEMAS)

        sources: Dict[str, pl.DataFrame] = {}
        results: List[LoadResult] = []

        for table in tables:
            config = SourceFileConfig(
                table=table,
                file_path=directory / f"{table}.{file_format.value}",
                file_format=file_format,
            )
            df, result = self.read(config)
            results.append(result)
            if df is not None:
                sources[table] = df

        failed = [r for r in results if r.status == LoadStatus.FAILED]
        logger.info(
            f"Directory load completed: {len(results) - len(failed)} successful, {len(failed)} failed",
            directory=str(directory),
        )

        if failed:
            raise SourceLoadError(
                "; ".join(f"{r.table}: {r.error_message}" for r in failed)
            )

        return sources, results


def write_sources(
    sources: Dict[str, pl.DataFrame],
    directory: Union[str, Path],
    file_format: FileFormat = FileFormat.PARQUET,
) -> List[str]:
    """Write source frames as <table>.<format> files readable by SourceLoader"""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    file_format = FileFormat(file_format)

    written = []
    for table, df in sources.items():
        path = directory / f"{table}.{file_format.value}"
        if file_format == FileFormat.PARQUET:
            df.write_parquet(path)
        elif file_format == FileFormat.CSV:
            df.write_csv(path)
        else:
            # dbgen layout: no header, trailing separator
            df.with_columns(pl.lit(None, dtype=pl.Utf8).alias("_trailing")).write_csv(
                path, separator=TBL_SEPARATOR, include_header=False, quote_style="never"
            )
        written.append(str(path))

    logger.info("Source files written", directory=str(directory), tables=len(written))
    return written


"""
Data Validation Module

Rule-based data quality checks for the dimensional model.

Features:
- Null checks
- Grain (single or composite key) uniqueness
- Range and allowed-value checks
- Unknown-member checks
- Referential integrity between facts and dimensions
- Additivity reconciliation between facts and snapshots
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import polars as pl
import structlog

from tpch_kimball.transformation.aggregates import (
    DAILY_SNAPSHOT_GRAIN,
    MONTHLY_SNAPSHOT_GRAIN,
    SNAPSHOT_MEASURES,
)
from tpch_kimball.transformation.facts import DATE_KEY_COLUMNS, SALES_FACTS_GRAIN
from tpch_kimball.transformation.helpers import UNKNOWN_KEY, month_key_from_date_key_expr
from tpch_kimball.transformation.transformers import ModelBuild, Relation

logger = structlog.get_logger(__name__)

# Tolerance for float sums compared across grains
SUM_TOLERANCE = 0.01


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Critical - blocks publishing
    WARNING = "warning"  # Non-critical - logged but continues
    INFO = "info"  # Informational only


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Percentage of passed checks"""
        if self.total_checks == 0:
            return 100.0
        return (self.passed_checks / self.total_checks) * 100

    @property
    def failures(self) -> List[ValidationCheck]:
        return [c for c in self.checks if not c.passed]


def _missing_columns(df: pl.DataFrame, columns: Sequence[str]) -> List[str]:
    return [c for c in columns if c not in df.columns]


class DataValidator:
    """
    Data validator with a chainable check suite.

    Example:
        validator = DataValidator()
        validator.add_not_null_check("key")
        validator.add_unique_check(["order_num", "line_item_num"])
        result = validator.validate(df)
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Fail on any warning
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []

    def reset(self) -> None:
        """Reset validator state"""
        self._checks = []

    def _column_not_found(
        self, name: str, missing: List[str], severity: ValidationSeverity
    ) -> ValidationCheck:
        return ValidationCheck(
            name=name,
            passed=False,
            severity=severity,
            message=f"Column(s) {missing} not found",
        )

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"not_null_{column}"
            if column not in df.columns:
                return self._column_not_found(name, [column], severity)

            null_count = df[column].null_count()
            total = len(df)
            passed = null_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {null_count} null values" if not passed else f"Column '{column}' has no null values",
                details={"null_count": null_count, "null_percentage": (null_count / total) * 100 if total > 0 else 0},
                failed_rows=null_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_unique_check(
        self,
        columns: Union[str, List[str]],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for uniqueness of a column or a composite grain"""
        subset = [columns] if isinstance(columns, str) else list(columns)

        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"unique_{'_'.join(subset)}"
            missing = _missing_columns(df, subset)
            if missing:
                return self._column_not_found(name, missing, severity)

            total = len(df)
            unique_count = df.n_unique(subset=subset) if total > 0 else 0
            duplicate_count = total - unique_count
            passed = duplicate_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"{subset} has {duplicate_count} duplicate rows" if not passed else f"{subset} values are unique",
                details={"unique_count": unique_count, "duplicate_count": duplicate_count},
                failed_rows=duplicate_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values within specified range"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"range_{column}"
            if column not in df.columns:
                return self._column_not_found(name, [column], severity)

            conditions = []
            if min_value is not None:
                conditions.append(pl.col(column) < min_value)
            if max_value is not None:
                conditions.append(pl.col(column) > max_value)

            if not conditions:
                return ValidationCheck(
                    name=name,
                    passed=True,
                    severity=severity,
                    message="No range specified",
                )

            # Combine conditions with OR
            combined = conditions[0]
            for cond in conditions[1:]:
                combined = combined | cond

            out_of_range = df.filter(combined).height
            total = len(df)
            passed = out_of_range == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {out_of_range} values outside range [{min_value}, {max_value}]" if not passed else "All values in range",
                details={"min": min_value, "max": max_value, "out_of_range_count": out_of_range},
                failed_rows=out_of_range,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_enum_check(
        self,
        column: str,
        allowed_values: List[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values in allowed set"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"enum_{column}"
            if column not in df.columns:
                return self._column_not_found(name, [column], severity)

            invalid = df.filter(
                ~pl.col(column).is_in(allowed_values) & pl.col(column).is_not_null()
            ).height
            total = len(df)
            passed = invalid == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {invalid} invalid values" if not passed else "All values are valid",
                details={"allowed_values": allowed_values, "invalid_count": invalid},
                failed_rows=invalid,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_unknown_member_check(
        self,
        key_column: str = "key",
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check that exactly one row holds the unknown key"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = "unknown_member"
            if key_column not in df.columns:
                return self._column_not_found(name, [key_column], severity)

            unknown_rows = df.filter(pl.col(key_column) == UNKNOWN_KEY).height
            passed = unknown_rows == 1

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message="Unknown member present" if passed else f"Expected 1 unknown member row, found {unknown_rows}",
                details={"unknown_rows": unknown_rows},
                failed_rows=0 if passed else abs(unknown_rows - 1),
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_custom_check(
        self,
        name: str,
        check_func: Callable[[pl.DataFrame], bool],
        message_on_fail: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add custom validation check"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            try:
                passed = bool(check_func(df))
                return ValidationCheck(
                    name=name,
                    passed=passed,
                    severity=severity,
                    message="Check passed" if passed else message_on_fail,
                    total_rows=len(df),
                )
            except Exception as e:
                return ValidationCheck(
                    name=name,
                    passed=False,
                    severity=severity,
                    message=f"Check failed with error: {str(e)}",
                )

        self._checks.append(check)
        return self

    def add_referential_integrity_check(
        self,
        column: str,
        reference_df: pl.DataFrame,
        reference_column: str = "key",
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add referential integrity check"""
        ref_values = reference_df[reference_column].unique()

        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"ref_integrity_{column}"
            if column not in df.columns:
                return self._column_not_found(name, [column], severity)

            # Find orphan records
            orphans = df.filter(
                ~pl.col(column).is_in(ref_values) & pl.col(column).is_not_null()
            ).height
            total = len(df)
            passed = orphans == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {orphans} orphan records" if not passed else "Referential integrity maintained",
                details={"orphan_count": orphans},
                failed_rows=orphans,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on DataFrame.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.utcnow()
        results = []

        logger.info("Running validation checks", checks=len(self._checks), rows=len(df))

        for check_func in self._checks:
            result = check_func(df)
            results.append(result)

            if not result.passed:
                logger.warning(
                    f"Validation failed: {result.name}",
                    message=result.message,
                    severity=result.severity.value,
                )

        completed_at = datetime.utcnow()

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0 and self.strict_mode:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        validation_result = ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=completed_at,
        )

        logger.info(
            f"Validation complete: {status.value}",
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )

        return validation_result


# =============================================================================
# RECONCILIATION
# =============================================================================

def _sums_match(
    left: pl.DataFrame,
    right: pl.DataFrame,
    grain: List[str],
    measures: List[str],
) -> int:
    """Count groups whose measure sums differ between two frames"""
    left_sums = left.group_by(grain).agg([pl.col(m).sum() for m in measures])
    right_sums = right.group_by(grain).agg([pl.col(m).sum() for m in measures])

    compared = left_sums.join(right_sums, on=grain, how="full", suffix="_right", coalesce=True)
    mismatch = pl.lit(False)
    for m in measures:
        diff = (pl.col(m).fill_null(0.0) - pl.col(f"{m}_right").fill_null(0.0)).abs()
        mismatch = mismatch | (diff > SUM_TOLERANCE)

    return compared.filter(mismatch).height


def daily_matches_facts(sales_facts: pl.DataFrame, daily: pl.DataFrame) -> bool:
    """Daily snapshot sums equal sales_facts sums per (date, customer, part)"""
    facts = sales_facts.filter(
        pl.col("receipt_date_key").is_in(daily["receipt_date_key"].unique())
    ).select([
        *DAILY_SNAPSHOT_GRAIN,
        pl.col("num_parts"),
        (pl.col("num_parts") * pl.col("is_returned")).alias("num_parts_returned"),
        pl.col("gross_sales"),
        (pl.col("gross_sales") * pl.col("is_returned")).alias("sales_returned"),
        pl.col("net_sales"),
    ])
    # Empty calendar days only exist on the snapshot side, with zero measures
    return _sums_match(facts, daily, DAILY_SNAPSHOT_GRAIN, SNAPSHOT_MEASURES) == 0


def monthly_matches_daily(daily: pl.DataFrame, monthly: pl.DataFrame) -> bool:
    """Monthly snapshot sums equal the sum of their daily rows"""
    rolled = daily.with_columns(
        month_key_from_date_key_expr("receipt_date_key").alias("receipt_month_key")
    )
    return _sums_match(rolled, monthly, MONTHLY_SNAPSHOT_GRAIN, SNAPSHOT_MEASURES) == 0


def _covers_calendar(daily: pl.DataFrame, date_dim: pl.DataFrame) -> bool:
    return date_dim["key"].is_in(daily["receipt_date_key"].unique()).all()


# =============================================================================
# PRE-BUILT VALIDATORS
# =============================================================================

def create_dimension_validator() -> DataValidator:
    """Create pre-configured validator for any dimension"""
    return (
        DataValidator()
        .add_not_null_check("key")
        .add_unique_check("key")
        .add_unknown_member_check("key")
    )


def create_date_dim_validator() -> DataValidator:
    """Create pre-configured validator for date_dim"""
    return (
        create_dimension_validator()
        .add_range_check("day_of_week", min_value=1, max_value=7)
        .add_range_check("quarter", min_value=1, max_value=4)
        .add_custom_check(
            name="weekend_flag",
            check_func=lambda df: df.filter(
                pl.col("is_weekend") != pl.col("day_of_week").is_in([1, 7])
            ).height == 0,
            message_on_fail="is_weekend disagrees with day_of_week",
        )
    )


def create_sales_facts_validator(
    customers_dim: pl.DataFrame,
    parts_dim: pl.DataFrame,
    date_dim: pl.DataFrame,
) -> DataValidator:
    """Create pre-configured validator for sales_facts"""
    validator = (
        DataValidator()
        .add_not_null_check("order_num")
        .add_not_null_check("line_item_num")
        .add_unique_check(SALES_FACTS_GRAIN)
        .add_enum_check("is_fulfilled", [0, 1])
        .add_enum_check("is_returned", [0, 1])
        .add_range_check("discount", min_value=0, max_value=1, severity=ValidationSeverity.WARNING)
        .add_referential_integrity_check("customer_key", customers_dim)
        .add_referential_integrity_check("part_key", parts_dim)
    )
    for column in DATE_KEY_COLUMNS:
        validator.add_not_null_check(column)
        validator.add_referential_integrity_check(column, date_dim)
    return validator


def create_daily_snapshot_validator(
    sales_facts: pl.DataFrame,
    customers_dim: pl.DataFrame,
    parts_dim: pl.DataFrame,
    date_dim: pl.DataFrame,
) -> DataValidator:
    """Create pre-configured validator for daily_sales_snapshot"""
    validator = (
        DataValidator()
        .add_unique_check(DAILY_SNAPSHOT_GRAIN)
        .add_referential_integrity_check("receipt_date_key", date_dim)
        .add_referential_integrity_check("customer_key", customers_dim)
        .add_referential_integrity_check("part_key", parts_dim)
        .add_custom_check(
            name="calendar_coverage",
            check_func=lambda df: _covers_calendar(df, date_dim),
            message_on_fail="Some date_dim keys have no daily snapshot row",
        )
        .add_custom_check(
            name="additive_to_sales_facts",
            check_func=lambda df: daily_matches_facts(sales_facts, df),
            message_on_fail="Daily sums differ from sales_facts",
        )
    )
    for measure in SNAPSHOT_MEASURES:
        validator.add_not_null_check(measure)
    return validator


def create_monthly_snapshot_validator(
    daily_snapshot: pl.DataFrame,
    customers_dim: pl.DataFrame,
    parts_dim: pl.DataFrame,
    month_dim: pl.DataFrame,
) -> DataValidator:
    """Create pre-configured validator for monthly_sales_snapshot"""
    validator = (
        DataValidator()
        .add_unique_check(MONTHLY_SNAPSHOT_GRAIN)
        .add_referential_integrity_check("receipt_month_key", month_dim)
        .add_referential_integrity_check("customer_key", customers_dim)
        .add_referential_integrity_check("part_key", parts_dim)
        .add_custom_check(
            name="additive_to_daily_snapshot",
            check_func=lambda df: monthly_matches_daily(daily_snapshot, df),
            message_on_fail="Monthly sums differ from the daily snapshot",
        )
    )
    for measure in SNAPSHOT_MEASURES:
        validator.add_not_null_check(measure)
    return validator


def validate_model(build: ModelBuild) -> Dict[Relation, ValidationResult]:
    """
    Validate every relation of a model build.

    Returns:
        ValidationResult per relation
    """
    customers_dim = build[Relation.CUSTOMERS_DIM]
    parts_dim = build[Relation.PARTS_DIM]
    date_dim = build[Relation.DATE_DIM]
    month_dim = build[Relation.MONTH_DIM]
    sales_facts = build[Relation.SALES_FACTS]
    daily = build[Relation.DAILY_SALES_SNAPSHOT]

    validators = {
        Relation.CUSTOMERS_DIM: create_dimension_validator(),
        Relation.PARTS_DIM: create_dimension_validator(),
        Relation.DATE_DIM: create_date_dim_validator(),
        Relation.MONTH_DIM: create_dimension_validator(),
        Relation.SALES_FACTS: create_sales_facts_validator(customers_dim, parts_dim, date_dim),
        Relation.DAILY_SALES_SNAPSHOT: create_daily_snapshot_validator(
            sales_facts, customers_dim, parts_dim, date_dim
        ),
        Relation.MONTHLY_SALES_SNAPSHOT: create_monthly_snapshot_validator(
            daily, customers_dim, parts_dim, month_dim
        ),
    }

    results = {}
    for relation, validator in validators.items():
        results[relation] = validator.validate(build[relation])

    return results


def model_passed(results: Dict[Relation, ValidationResult]) -> bool:
    """True when no relation failed validation"""
    return all(r.status != ValidationStatus.FAILED for r in results.values())

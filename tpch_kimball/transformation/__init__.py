"""
Data Transformation Module
"""
from .aggregates import build_daily_sales_snapshot, build_monthly_sales_snapshot
from .dimensions import (
    build_customers_dim,
    build_date_dim,
    build_month_dim,
    build_parts_dim,
)
from .facts import build_sales_facts
from .helpers import UNKNOWN_KEY, date_key, net_sales
from .transformers import (
    DEPENDENCY_ORDER,
    KimballTransformer,
    ModelBuild,
    ModelBuildError,
    Relation,
    TransformResult,
)

__all__ = [
    "UNKNOWN_KEY",
    "date_key",
    "net_sales",
    "build_customers_dim",
    "build_parts_dim",
    "build_date_dim",
    "build_month_dim",
    "build_sales_facts",
    "build_daily_sales_snapshot",
    "build_monthly_sales_snapshot",
    "DEPENDENCY_ORDER",
    "KimballTransformer",
    "ModelBuild",
    "ModelBuildError",
    "Relation",
    "TransformResult",
]

"""
Database Models - Sales Star Schema

Warehouse tables for the published sales model. Table and column names
match the relations built by the transformation layer so frames can be
inserted without renaming.

Dimension Tables:
- customers_dim: Customers with nation and region
- parts_dim: Part catalog
- date_dim: Calendar days, key YYYYMMDD
- month_dim: Calendar months, key YYYYMM

Fact Tables:
- sales_facts: One row per order line item
- daily_sales_snapshot: Receipt date x customer x part
- monthly_sales_snapshot: Receipt month x customer x part

Every dimension holds an unknown member with key -1.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Type

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# DIMENSION TABLES
# =============================================================================

class CustomersDim(Base):
    """
    Customer Dimension Table

    SCD Type 1: a refresh overwrites every attribute.
    """
    __tablename__ = "customers_dim"

    key: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    name: Mapped[Optional[str]] = mapped_column(String(25))
    address: Mapped[Optional[str]] = mapped_column(String(40))
    nation: Mapped[Optional[str]] = mapped_column(String(25))
    region: Mapped[Optional[str]] = mapped_column(String(25))
    phone: Mapped[Optional[str]] = mapped_column(String(20))

    __table_args__ = (
        Index("ix_customers_dim_nation", "nation"),
        Index("ix_customers_dim_region", "region"),
    )


class PartsDim(Base):
    """Part Dimension Table"""
    __tablename__ = "parts_dim"

    key: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    name: Mapped[Optional[str]] = mapped_column(String(55))
    manufacturer: Mapped[Optional[str]] = mapped_column(String(25))
    brand: Mapped[Optional[str]] = mapped_column(String(10))
    type: Mapped[Optional[str]] = mapped_column(String(25))
    size: Mapped[Optional[int]] = mapped_column(Integer)
    container: Mapped[Optional[str]] = mapped_column(String(20))
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2))

    __table_args__ = (
        Index("ix_parts_dim_brand", "brand"),
    )


class DateDim(Base):
    """
    Date Dimension Table

    Pre-populated calendar, day_of_week 1=Sunday.
    """
    __tablename__ = "date_dim"

    key: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)  # YYYYMMDD format
    calendar_date: Mapped[Optional[date]] = mapped_column("date", Date, unique=True)
    day_of_week_name: Mapped[Optional[str]] = mapped_column(String(20))
    day_of_week: Mapped[Optional[int]] = mapped_column(Integer)
    day_of_month: Mapped[Optional[int]] = mapped_column(Integer)
    day_of_year: Mapped[Optional[int]] = mapped_column(Integer)
    week_of_year: Mapped[Optional[int]] = mapped_column(Integer)
    month_name: Mapped[Optional[str]] = mapped_column(String(20))
    month_number: Mapped[Optional[int]] = mapped_column(Integer)
    quarter: Mapped[Optional[int]] = mapped_column(Integer)
    year: Mapped[Optional[int]] = mapped_column(Integer)
    is_weekend: Mapped[Optional[bool]] = mapped_column(Boolean)

    __table_args__ = (
        Index("ix_date_dim_year_month", "year", "month_number"),
    )


class MonthDim(Base):
    """Month Dimension Table"""
    __tablename__ = "month_dim"

    key: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)  # YYYYMM format
    calendar_date: Mapped[Optional[date]] = mapped_column("date", Date, unique=True)
    month_name: Mapped[Optional[str]] = mapped_column(String(20))
    month_number: Mapped[Optional[int]] = mapped_column(Integer)
    quarter: Mapped[Optional[int]] = mapped_column(Integer)
    year: Mapped[Optional[int]] = mapped_column(Integer)
    num_days: Mapped[Optional[int]] = mapped_column(Integer)


# =============================================================================
# FACT TABLES
# =============================================================================

class SalesFact(Base):
    """
    Sales Fact Table

    Transaction grain: one row per (order_num, line_item_num).
    """
    __tablename__ = "sales_facts"

    order_num: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    line_item_num: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    # Dimension foreign keys
    customer_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers_dim.key"), nullable=False
    )
    part_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("parts_dim.key"), nullable=False
    )
    order_date_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("date_dim.key"), nullable=False
    )
    commit_date_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("date_dim.key"), nullable=False
    )
    receipt_date_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("date_dim.key"), nullable=False
    )
    ship_date_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("date_dim.key"), nullable=False
    )

    # Measures
    num_parts: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2))
    gross_sales: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2))
    discount: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2))
    tax: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2))
    net_sales: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2))

    # Flags
    is_fulfilled: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_returned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_sales_facts_receipt_date", "receipt_date_key"),
        Index("ix_sales_facts_customer", "customer_key"),
        Index("ix_sales_facts_part", "part_key"),
    )


class DailySalesSnapshot(Base):
    """
    Daily Sales Snapshot

    Periodic snapshot at (receipt_date_key, customer_key, part_key) grain.
    Every calendar day is present, days without sales carry -1 keys.
    """
    __tablename__ = "daily_sales_snapshot"

    receipt_date_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("date_dim.key"), primary_key=True, autoincrement=False
    )
    customer_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers_dim.key"), primary_key=True, autoincrement=False
    )
    part_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("parts_dim.key"), primary_key=True, autoincrement=False
    )

    num_parts: Mapped[Decimal] = mapped_column(Numeric(38, 2), nullable=False, default=0)
    num_parts_returned: Mapped[Decimal] = mapped_column(Numeric(38, 2), nullable=False, default=0)
    gross_sales: Mapped[Decimal] = mapped_column(Numeric(38, 2), nullable=False, default=0)
    sales_returned: Mapped[Decimal] = mapped_column(Numeric(38, 2), nullable=False, default=0)
    net_sales: Mapped[Decimal] = mapped_column(Numeric(38, 2), nullable=False, default=0)


class MonthlySalesSnapshot(Base):
    """Monthly Sales Snapshot at (receipt_month_key, customer_key, part_key) grain"""
    __tablename__ = "monthly_sales_snapshot"

    receipt_month_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("month_dim.key"), primary_key=True, autoincrement=False
    )
    customer_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers_dim.key"), primary_key=True, autoincrement=False
    )
    part_key: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("parts_dim.key"), primary_key=True, autoincrement=False
    )

    num_parts: Mapped[Decimal] = mapped_column(Numeric(38, 2), nullable=False, default=0)
    num_parts_returned: Mapped[Decimal] = mapped_column(Numeric(38, 2), nullable=False, default=0)
    gross_sales: Mapped[Decimal] = mapped_column(Numeric(38, 2), nullable=False, default=0)
    sales_returned: Mapped[Decimal] = mapped_column(Numeric(38, 2), nullable=False, default=0)
    net_sales: Mapped[Decimal] = mapped_column(Numeric(38, 2), nullable=False, default=0)


# Leaves first
MODELS_IN_DEPENDENCY_ORDER: List[Type[Base]] = [
    CustomersDim,
    PartsDim,
    DateDim,
    MonthDim,
    SalesFact,
    DailySalesSnapshot,
    MonthlySalesSnapshot,
]

MODELS_BY_RELATION: Dict[str, Type[Base]] = {
    model.__tablename__: model for model in MODELS_IN_DEPENDENCY_ORDER
}

"""
TPCH Kimball Sales Model

Star schema over the TPCH order-line data: customer, part, date and
month dimensions, a line-item sales fact and daily/monthly snapshots.
"""

__version__ = "1.0.0"

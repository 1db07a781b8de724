"""
Synthetic Data Module
"""
from .generators import TPCHGenerator, generate_sources

__all__ = ["TPCHGenerator", "generate_sources"]

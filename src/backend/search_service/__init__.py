"""Educational content search service"""

__version__ = "2.0.0"

"""
Search Strategy Package

Contains all content search strategy implementations.
"""

from .base import SearchStrategy

__all__ = ["SearchStrategy"]

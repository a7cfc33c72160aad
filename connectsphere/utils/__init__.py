# connectsphere/utils/__init__.py
"""
Utility package.

Helpers shared across the whole project.
"""

from .datetime_utils import DateTimeUtils

__all__ = ['DateTimeUtils']

"""
Catalog Module

Contains catalog loading, name matching, numeric version comparison and
stored-data validation.
"""

from .loader import CatalogLoader
from .name_matcher import CatalogIndex, NameMatcher, normalize_name
from .validator import StoredDataProblem, validate_stored_data

__all__ = [
    'CatalogLoader',
    'CatalogIndex',
    'NameMatcher',
    'normalize_name',
    'StoredDataProblem',
    'validate_stored_data',
]

"""
Coffee Discovery - natural-language coffee search

Turns a free-text description into structured preferences, filters the
catalog with them and logs every query. Admins and merchants manage the
catalog through role-scoped surfaces.
"""

from coffee_discovery.core.config import CoffeeConfig, get_config, set_config
from coffee_discovery.core.search import SearchOrchestrator, SearchResult

__all__ = [
    'CoffeeConfig',
    'get_config',
    'set_config',
    'SearchOrchestrator',
    'SearchResult',
]

__version__ = '0.1.0'

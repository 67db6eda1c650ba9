"""
API module for Coffee Discovery.

Provides REST endpoints for search and catalog management.
"""
from coffee_discovery.api.models import (
    SearchRequest,
    SearchResponse,
    SessionResponse,
    ProductRequest,
    DescriptionRequest,
    DescriptionResponse,
)

__all__ = [
    "SearchRequest",
    "SearchResponse",
    "SessionResponse",
    "ProductRequest",
    "DescriptionRequest",
    "DescriptionResponse",
]

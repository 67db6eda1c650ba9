"""
Catalog management for admins and merchants.
"""
from coffee_discovery.catalog.forms import ProductForm
from coffee_discovery.catalog.management import AdminCatalog, MerchantCatalog, catalog_for

__all__ = [
    "ProductForm",
    "AdminCatalog",
    "MerchantCatalog",
    "catalog_for",
]

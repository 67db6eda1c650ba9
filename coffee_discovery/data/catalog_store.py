"""
Catalog data access layer backed by Supabase.

Typed façade over the products, user_queries, merchants and admins tables.
Every transport or PostgREST error is raised as PersistenceFailure; there are
no retries and no writes spanning more than one table.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from coffee_discovery.core.config import CoffeeConfig, get_config
from coffee_discovery.core.errors import NotFound, PersistenceFailure
from coffee_discovery.data.models import Merchant, Product, QueryLogEntry, SearchPreference
from coffee_discovery.utils.logger import get_logger
from coffee_discovery.utils.supabase_client import SupabaseClient, SupabaseError

logger = get_logger("data.catalog_store")

PRODUCT_ORDER = "created_at.desc"
QUERY_LOG_ORDER = "timestamp.desc"


def eq(value: Any) -> str:
    """
    Explicit equality filter.

    Identifiers often come from URLs; a bare value that looks like an
    operator ("in.(a,b)", "neq.x") would otherwise match many rows.
    """
    return f"eq.{value}"


def contains(value: str) -> str:
    """Case-insensitive substring filter with LIKE wildcards in value escaped."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    # PostgREST reads * as %, and it cannot be escaped
    escaped = escaped.replace("*", "")
    return f"ilike.%{escaped}%"


@dataclass
class CatalogFilter:
    """
    Predicates for a product listing. Supplied fields are ANDed; None or an
    empty string imposes no constraint.
    """
    roast_level: Optional[str] = None
    acidity: Optional[str] = None
    origin: Optional[str] = None
    merchant_id: Optional[str] = None

    @classmethod
    def from_preference(cls, preference: SearchPreference) -> "CatalogFilter":
        """
        Build the search filter from a preference record.

        flavor_notes and other_preferences are not turned into predicates.
        """
        return cls(
            roast_level=preference.roast_level or None,
            acidity=preference.acidity or None,
            origin=preference.origin or None,
        )

    def to_params(self) -> Dict[str, str]:
        """Render the filter as PostgREST query parameters."""
        params = {}
        if self.roast_level:
            params["roast_level"] = eq(self.roast_level)
        if self.acidity:
            params["acidity"] = eq(self.acidity)
        if self.origin:
            params["origin"] = contains(self.origin)
        if self.merchant_id:
            params["merchant_id"] = eq(self.merchant_id)
        return params

    def is_empty(self) -> bool:
        return not self.to_params()


class CatalogStore:
    """Persistence gateway for products, the query log, merchants and admins."""

    def __init__(self, client: Optional[SupabaseClient] = None, config: Optional[CoffeeConfig] = None):
        self.config = config or get_config()
        self.client = client or SupabaseClient(
            url=self.config.supabase_url,
            key=self.config.supabase_key,
            timeout=self.config.request_timeout,
        )

    def for_access_token(self, access_token: str) -> "CatalogStore":
        """Same store, acting as a signed-in user."""
        return CatalogStore(self.client.with_access_token(access_token), self.config)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def list_products(self, catalog_filter: Optional[CatalogFilter] = None) -> List[Product]:
        """Every product matching the filter, newest first."""
        params = (catalog_filter or CatalogFilter()).to_params()
        rows = self._call(
            "list products",
            self.client.select,
            self.config.products_table,
            filters=params,
            order=PRODUCT_ORDER,
        )
        logger.info(f"Listed {len(rows)} products with filter {params}")
        return [self._to_product(row) for row in rows]

    def get_product(self, product_id: str) -> Product:
        rows = self._call(
            f"fetch product {product_id}",
            self.client.select,
            self.config.products_table,
            filters={"id": eq(product_id)},
            limit=1,
        )
        if not rows:
            raise NotFound(f"Product {product_id} not found")
        return self._to_product(rows[0])

    def add_product(self, product: Product) -> Product:
        rows = self._call("add product", self.client.insert, self.config.products_table, product.to_row())
        return self._to_product(rows[0]) if rows else product

    def update_product(self, product_id: str, changes: Dict[str, Any]) -> Product:
        rows = self._call(
            f"update product {product_id}",
            self.client.update,
            self.config.products_table,
            changes,
            {"id": eq(product_id)},
        )
        if not rows:
            raise NotFound(f"Product {product_id} not found")
        return self._to_product(rows[0])

    def delete_product(self, product_id: str) -> None:
        self._call(
            f"delete product {product_id}",
            self.client.delete,
            self.config.products_table,
            {"id": eq(product_id)},
        )

    # ------------------------------------------------------------------
    # Query log
    # ------------------------------------------------------------------

    def log_query(self, entry: QueryLogEntry) -> None:
        """Append one entry to the query log."""
        self._call("log query", self.client.insert, self.config.queries_table, entry.to_row())

    def list_queries(self) -> List[QueryLogEntry]:
        rows = self._call(
            "list queries",
            self.client.select,
            self.config.queries_table,
            order=QUERY_LOG_ORDER,
        )
        return [QueryLogEntry.from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Roles and merchants
    # ------------------------------------------------------------------

    def is_admin(self, user_id: str) -> bool:
        rows = self._call(
            "check admin membership",
            self.client.select,
            self.config.admins_table,
            filters={"user_id": eq(user_id)},
            select="user_id",
            limit=1,
        )
        return bool(rows)

    def get_merchant_by_user(self, user_id: str) -> Optional[Merchant]:
        rows = self._call(
            "fetch merchant by user",
            self.client.select,
            self.config.merchants_table,
            filters={"user_id": eq(user_id)},
            limit=1,
        )
        return self._to_merchant(rows[0]) if rows else None

    def get_merchant(self, merchant_id: str) -> Merchant:
        rows = self._call(
            f"fetch merchant {merchant_id}",
            self.client.select,
            self.config.merchants_table,
            filters={"id": eq(merchant_id)},
            limit=1,
        )
        if not rows:
            raise NotFound(f"Merchant {merchant_id} not found")
        return self._to_merchant(rows[0])

    def create_merchant(self, merchant: Merchant) -> Merchant:
        rows = self._call("create merchant", self.client.insert, self.config.merchants_table, merchant.to_row())
        return self._to_merchant(rows[0]) if rows else merchant

    def update_merchant(self, merchant_id: str, changes: Dict[str, Any]) -> Merchant:
        values = dict(changes)
        values["updated_at"] = datetime.now(timezone.utc).isoformat()
        rows = self._call(
            f"update merchant {merchant_id}",
            self.client.update,
            self.config.merchants_table,
            values,
            {"id": eq(merchant_id)},
        )
        if not rows:
            raise NotFound(f"Merchant {merchant_id} not found")
        return self._to_merchant(rows[0])

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """True if the products table answers a one-row query."""
        try:
            self.client.select(self.config.products_table, select="id", limit=1)
            return True
        except SupabaseError as e:
            logger.warning(f"Supabase connection check failed: {e}")
            return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _call(action: str, method, *args, **kwargs) -> List[Dict[str, Any]]:
        try:
            return method(*args, **kwargs)
        except SupabaseError as e:
            raise PersistenceFailure(f"Failed to {action}: {e}") from e

    @staticmethod
    def _to_product(row: Dict[str, Any]) -> Product:
        try:
            return Product.model_validate(row)
        except ValidationError as e:
            raise PersistenceFailure(f"Malformed product row {row.get('id')}: {e}") from e

    @staticmethod
    def _to_merchant(row: Dict[str, Any]) -> Merchant:
        try:
            return Merchant.model_validate(row)
        except ValidationError as e:
            raise PersistenceFailure(f"Malformed merchant row {row.get('id')}: {e}") from e

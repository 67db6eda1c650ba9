"""
Role-scoped catalog management.

AdminCatalog edits the whole catalog; MerchantCatalog is bound to a single
merchant and may only touch that merchant's products and profile.
"""
from typing import List, Optional, Union

from coffee_discovery.auth.roles import AdminRole, MerchantRole, RoleKind
from coffee_discovery.auth.session import AuthSession
from coffee_discovery.catalog.forms import ProductForm
from coffee_discovery.core.errors import FormValidationError, PermissionDenied
from coffee_discovery.data.catalog_store import CatalogFilter, CatalogStore
from coffee_discovery.data.models import Merchant, Product, QueryLogEntry
from coffee_discovery.generation.description_generator import CoffeeDetails, DescriptionGenerator
from coffee_discovery.utils.logger import get_logger

logger = get_logger("catalog.management")


class AdminCatalog:

    def __init__(self, store: CatalogStore, generator: Optional[DescriptionGenerator] = None):
        self.store = store
        self.generator = generator or DescriptionGenerator()

    def list_products(self) -> List[Product]:
        return self.store.list_products()

    def get_product(self, product_id: str) -> Product:
        return self.store.get_product(product_id)

    def add_product(self, form: ProductForm) -> Product:
        product = self.store.add_product(form.to_product())
        logger.info(f"Admin added product {product.id} ({product.name})")
        return product

    def update_product(self, product_id: str, form: ProductForm) -> Product:
        changes = form.to_product().to_row()
        # Editing must not detach a merchant's product from its owner
        for key in ("merchant_id", "is_merchant_product"):
            changes.pop(key)
        return self.store.update_product(product_id, changes)

    def delete_product(self, product_id: str) -> None:
        self.store.delete_product(product_id)
        logger.info(f"Admin deleted product {product_id}")

    def list_queries(self) -> List[QueryLogEntry]:
        return self.store.list_queries()

    def generate_description(self, details: CoffeeDetails) -> str:
        return self.generator.generate(details)


class MerchantCatalog:

    def __init__(self, store: CatalogStore, merchant_id: str,
                 generator: Optional[DescriptionGenerator] = None):
        self.store = store
        self.merchant_id = merchant_id
        self.generator = generator or DescriptionGenerator()

    def list_products(self) -> List[Product]:
        return self.store.list_products(CatalogFilter(merchant_id=self.merchant_id))

    def get_product(self, product_id: str) -> Product:
        return self._owned(product_id)

    def add_product(self, form: ProductForm) -> Product:
        product = self.store.add_product(form.to_product(merchant_id=self.merchant_id))
        logger.info(f"Merchant {self.merchant_id} added product {product.id} ({product.name})")
        return product

    def update_product(self, product_id: str, form: ProductForm) -> Product:
        self._owned(product_id)
        changes = form.to_product(merchant_id=self.merchant_id).to_row()
        return self.store.update_product(product_id, changes)

    def delete_product(self, product_id: str) -> None:
        self._owned(product_id)
        self.store.delete_product(product_id)
        logger.info(f"Merchant {self.merchant_id} deleted product {product_id}")

    def get_profile(self) -> Merchant:
        return self.store.get_merchant(self.merchant_id)

    def update_profile(self, name: str, description: Optional[str] = None,
                       website: Optional[str] = None, logo_url: Optional[str] = None) -> Merchant:
        if not name or not name.strip():
            raise FormValidationError("Business name is required")
        return self.store.update_merchant(self.merchant_id, {
            "name": name.strip(),
            "description": description or None,
            "website": website or None,
            "logo_url": logo_url or None,
        })

    def generate_description(self, details: CoffeeDetails) -> str:
        return self.generator.generate(details)

    def _owned(self, product_id: str) -> Product:
        product = self.store.get_product(product_id)
        if product.merchant_id != self.merchant_id:
            logger.warning(f"Merchant {self.merchant_id} denied access to product {product_id}")
            raise PermissionDenied("You do not have permission to modify this product")
        return product


def catalog_for(
    session: AuthSession,
    generator: Optional[DescriptionGenerator] = None,
) -> Union[AdminCatalog, MerchantCatalog]:
    """Management surface for the signed-in user's role."""
    role = session.require_role(RoleKind.ADMIN, RoleKind.MERCHANT)
    store = session.user_store()
    if isinstance(role, AdminRole):
        return AdminCatalog(store, generator)
    if isinstance(role, MerchantRole):
        return MerchantCatalog(store, role.merchant_id, generator)
    raise PermissionDenied("Catalog management requires an admin or merchant role")

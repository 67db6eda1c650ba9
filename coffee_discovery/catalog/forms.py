"""
Product form parsing.

Form input arrives as loosely typed strings (price as text, flavor notes as a
comma-separated list); ProductForm turns it into a validated Product.
"""
from dataclasses import dataclass
from typing import Any, Optional, Union

from pydantic import ValidationError

from coffee_discovery.core.errors import FormValidationError
from coffee_discovery.data.models import Product, split_flavor_notes
from coffee_discovery.generation.description_generator import CoffeeDetails


def parse_price(value: Any) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise FormValidationError("Price is required")
    try:
        price = float(str(value).strip())
    except ValueError:
        raise FormValidationError(f"Invalid price: {value!r}")
    if price != price or price < 0:
        raise FormValidationError("Price must be a non-negative number")
    return price


@dataclass
class ProductForm:
    name: str = ""
    price: Union[str, float, None] = None
    origin: Optional[str] = None
    roast_level: Optional[str] = None
    acidity: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    purchase_url: Optional[str] = None
    flavor_notes: Union[str, list, None] = ""
    is_featured: bool = False

    def to_product(self, merchant_id: Optional[str] = None) -> Product:
        """
        Build the product row this form describes.

        With merchant_id set the product is marked as a merchant product and
        can never be featured.
        """
        if not self.name or not self.name.strip():
            raise FormValidationError("Name is required")
        price = parse_price(self.price)
        try:
            return Product(
                name=self.name.strip(),
                price=price,
                origin=self.origin,
                roast_level=(self.roast_level or "").strip().lower() or None,
                acidity=(self.acidity or "").strip().lower() or None,
                description=self.description or None,
                image_url=self.image_url or None,
                purchase_url=self.purchase_url or None,
                flavor_notes=self.flavor_notes or [],
                is_featured=bool(self.is_featured) and merchant_id is None,
                merchant_id=merchant_id,
                is_merchant_product=merchant_id is not None,
            )
        except ValidationError as e:
            raise FormValidationError(f"Invalid product: {e}") from e

    def details(self) -> CoffeeDetails:
        """Attributes used to generate a description for this form."""
        return CoffeeDetails(
            name=self.name,
            origin=self.origin,
            roast_level=self.roast_level,
            flavor_notes=split_flavor_notes(self.flavor_notes),
        )

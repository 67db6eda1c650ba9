"""
Pydantic models for Coffee Discovery API requests and responses.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, List, Union

from coffee_discovery.auth.registration import AccountType
from coffee_discovery.catalog.forms import ProductForm
from coffee_discovery.data.models import Product, SearchPreference, split_flavor_notes
from coffee_discovery.generation.description_generator import CoffeeDetails


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    service: str
    version: str
    supabase_connected: bool = Field(description="Whether the products table answered a one-row query")
    missing_credentials: List[str] = Field(default_factory=list, description="Unset credential variables")


class SearchRequest(BaseModel):
    """Request model for search endpoint."""
    query: str = Field(description="Free-text description of the coffee the user wants")


class SearchResponse(BaseModel):
    """Response model for search endpoint."""
    results: List[Product] = Field(description="Matching products, newest first")
    result_count: int = Field(description="Number of matching products")
    preferences: Dict[str, Any] = Field(default_factory=dict, description="Extracted preference record")


class WebQueryRequest(BaseModel):
    """Request model for web search query generation."""
    preferences: SearchPreference


class WebQueryResponse(BaseModel):
    query: str


class SignUpRequest(BaseModel):
    """Request model for account registration."""
    name: str = ""
    email: str = ""
    password: str = ""
    confirm_password: str = ""
    account_type: AccountType = Field(default=AccountType.USER, description="'user' or 'merchant'")


class SignUpResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    session_id: Optional[str] = Field(default=None, description="Set when the account was signed in immediately")


class SignInRequest(BaseModel):
    email: str
    password: str


class RestoreRequest(BaseModel):
    refresh_token: str = Field(description="Refresh token from a previous session")


class SessionResponse(BaseModel):
    """Identity and role of an authenticated session."""
    session_id: str
    user_id: str
    email: Optional[str] = None
    role: str = Field(description="'admin', 'merchant' or 'user'")
    merchant_id: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    email: str


class MerchantProfileRequest(BaseModel):
    """Request model for merchant setup and profile updates."""
    name: str = ""
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None


class ProductRequest(BaseModel):
    """Product form as submitted by the catalog screens."""
    name: str = ""
    price: Union[str, float, None] = Field(default=None, description="Price in USD, as text or number")
    origin: Optional[str] = None
    roast_level: Optional[str] = None
    acidity: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    purchase_url: Optional[str] = None
    flavor_notes: Union[str, List[str], None] = Field(default="", description="Comma-separated or list")
    is_featured: bool = False

    def to_form(self) -> ProductForm:
        return ProductForm(**self.model_dump())


class DescriptionRequest(BaseModel):
    """Request model for description generation."""
    name: str
    origin: Optional[str] = None
    roast_level: Optional[str] = None
    flavor_notes: Union[str, List[str], None] = ""

    def to_details(self) -> CoffeeDetails:
        return CoffeeDetails(
            name=self.name,
            origin=self.origin,
            roast_level=self.roast_level,
            flavor_notes=split_flavor_notes(self.flavor_notes),
        )


class DescriptionResponse(BaseModel):
    description: str

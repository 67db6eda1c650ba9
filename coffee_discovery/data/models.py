"""
Pydantic models for catalog rows and search records.

Column names follow the Supabase tables (products, user_queries, merchants).
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RoastLevel(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    DARK = "dark"


class Acidity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def split_flavor_notes(value: Any) -> List[str]:
    """Normalize flavor notes to a list of non-empty, trimmed strings.

    Accepts the comma-separated form used by the product forms as well as a list.
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    elif not isinstance(value, (list, tuple)):
        raise ValueError(f"flavor notes must be a string or list, got {type(value).__name__}")
    return [str(note).strip() for note in value if note is not None and str(note).strip()]


class Product(BaseModel):
    """A coffee product row."""
    model_config = ConfigDict(use_enum_values=True, extra="ignore")

    id: Optional[str] = Field(default=None, description="Server-assigned identifier")
    name: str = Field(min_length=1, description="Product name")
    origin: Optional[str] = Field(default=None, description="Country or region")
    roast_level: Optional[RoastLevel] = None
    acidity: Optional[Acidity] = None
    price: float = Field(ge=0, description="Price in USD")
    description: Optional[str] = None
    image_url: Optional[str] = None
    purchase_url: Optional[str] = None
    flavor_notes: List[str] = Field(default_factory=list)
    is_featured: bool = False
    merchant_id: Optional[str] = Field(default=None, description="Owning merchant; None means admin-curated")
    is_merchant_product: bool = False
    created_at: Optional[datetime] = None

    @field_validator("id", "merchant_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        return str(value) if value is not None else None

    @field_validator("roast_level", "acidity", "origin", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("flavor_notes", mode="before")
    @classmethod
    def _clean_flavor_notes(cls, value: Any) -> List[str]:
        return split_flavor_notes(value)

    def to_row(self) -> Dict[str, Any]:
        """Columns to write; server-assigned fields are left to the database."""
        return self.model_dump(mode="json", exclude={"id", "created_at"})


class SearchPreference(BaseModel):
    """
    Structured preferences extracted from one free-text query.

    Empty strings mean "not mentioned". The LLM (and the query log) use the
    camelCase keys, so aliases are accepted on input and produced by to_snapshot().
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    roast_level: str = Field(default="", alias="roastLevel")
    acidity: str = Field(default="")
    origin: str = Field(default="")
    flavor_notes: List[str] = Field(default_factory=list, alias="flavorNotes")
    other_preferences: str = Field(default="", alias="otherPreferences")

    @field_validator("roast_level", "acidity", "origin", mode="before")
    @classmethod
    def _normalize_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("other_preferences", mode="before")
    @classmethod
    def _normalize_other(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(str(v).strip() for v in value if v is not None and str(v).strip())
        if isinstance(value, dict):
            return ", ".join(f"{k}: {v}" for k, v in value.items() if v)
        return str(value).strip()

    @field_validator("flavor_notes", mode="before")
    @classmethod
    def _normalize_notes(cls, value: Any) -> List[str]:
        return split_flavor_notes(value)

    @classmethod
    def empty(cls) -> "SearchPreference":
        return cls()

    def is_empty(self) -> bool:
        return not (self.roast_level or self.acidity or self.origin
                    or self.flavor_notes or self.other_preferences)

    def to_snapshot(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class QueryLogEntry(BaseModel):
    """Audit record of one search, appended to user_queries."""
    query_text: str
    preferences: SearchPreference
    result_count: int = Field(ge=0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_row(self) -> Dict[str, Any]:
        return {
            "query_text": self.query_text,
            "response_data": {
                "preferences": self.preferences.to_snapshot(),
                "resultsCount": self.result_count,
            },
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "QueryLogEntry":
        response_data = row.get("response_data") or {}
        return cls(
            query_text=row.get("query_text") or "",
            preferences=SearchPreference.model_validate(response_data.get("preferences") or {}),
            result_count=response_data.get("resultsCount") or 0,
            timestamp=row.get("timestamp") or datetime.now(timezone.utc),
        )


class MerchantStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Merchant(BaseModel):
    """Storefront profile linked 1:1 to an auth user."""
    model_config = ConfigDict(use_enum_values=True, extra="ignore")

    id: Optional[str] = None
    user_id: str
    name: str = Field(min_length=1)
    email: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    status: MerchantStatus = MerchantStatus.ACTIVE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value: Any) -> Any:
        return str(value) if value is not None else None

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump(mode="json", exclude={"id", "updated_at"})
        if row.get("created_at") is None:
            row["created_at"] = datetime.now(timezone.utc).isoformat()
        return row

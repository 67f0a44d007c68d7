"""
Pydantic schemas for canonical listing records with validation
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime


class PropertyCreate(BaseModel):
    """
    Canonical listing record produced by the transformer and consumed by the loader.

    Attributes are snake_case; JSON output uses camelCase aliases
    (``mls_number`` -> ``mlsNumber``). Optional upstream fields stay None
    when absent; they are never coerced to 0 or "".
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    # Identity (required)
    mls_number: str = Field(..., min_length=1, max_length=64)
    listing_key: Optional[str] = None

    # Address
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None

    property_type: Optional[str] = None
    property_sub_type: Optional[str] = None

    # Price and dimensions; optional values are range-checked by the transformer
    list_price: float = Field(..., ge=0, allow_inf_nan=False)
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    square_feet: Optional[int] = None
    lot_size: Optional[float] = None
    year_built: Optional[int] = None

    description: Optional[str] = None
    photos: List[str] = Field(default_factory=list)

    # Status
    status: str = Field(..., min_length=1, max_length=32)
    standard_status: str = Field(..., min_length=1, max_length=64)
    mls_status: Optional[str] = None

    tax_id: Optional[str] = None
    virtual_tour_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    # Timestamps
    listing_date: Optional[datetime] = None
    modification_timestamp: Optional[datetime] = None
    days_on_market: Optional[int] = None

    @field_validator("mls_number", "status")
    @classmethod
    def strip_required_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("standard_status")
    @classmethod
    def reject_blank_status(cls, v):
        """Kept verbatim for audit; only an all-blank value is rejected"""
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("photos", mode="before")
    @classmethod
    def clean_photos(cls, v):
        """Keep non-empty string URLs, in order"""
        if v is None:
            return []
        return [url for url in v if isinstance(url, str) and url.strip()]


class PropertyResponse(PropertyCreate):
    """Stored listing as returned by the API"""
    id: int
    listing_date_estimated: bool = False
    last_updated: datetime
    created_at: datetime


class PropertySummary(BaseModel):
    """Compact listing row pushed to dashboard long-poll clients"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int
    mls_number: str
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    list_price: float
    status: str
    last_updated: datetime

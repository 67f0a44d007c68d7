"""
Pydantic schemas for data validation and serialization.

Schemas:
    property: Canonical listing record (PropertyCreate) and its API views
    api: Endpoint response envelopes (trigger, status, listings, long-poll, health)

Usage:
    from schemas.property import PropertyCreate
    from schemas.api import UpdatesResponse

Example:
    record = PropertyCreate(
        mls_number="123",
        list_price=500000,
        status="Active",
        standard_status="Active",
    )
    record.model_dump(by_alias=True)["mlsNumber"]  # "123"

Validation:
    - Natural key, price and status are required
    - Price rejects negative values; out-of-range optional values are
      dropped to None by the transformer
    - photos keeps only non-empty string URLs
"""

__all__ = [
    "PropertyCreate",
    "PropertyResponse",
    "PropertySummary",
    "TriggerJobResponse",
    "JobStatusResponse",
    "RecentPropertiesResponse",
    "PropertyListResponse",
    "UpdatesResponse",
    "HealthCheckResponse",
]

"""
SQLAlchemy ORM models for database tables.

Models:
    base: Declarative Base and the normalized ListingStatus enum
    property: Property, one row per listing keyed by mls_number
    property_store: PropertyStore read queries (watermark, counts, recent)

Usage:
    from models.base import Base, ListingStatus
    from models.property import Property
    from models.property_store import PropertyStore

Example:
    store = PropertyStore(session)
    watermark = await store.last_updated()
    total = await store.count()
"""

__all__ = [
    "Base",
    "ListingStatus",
    "Property",
    "PropertyStore",
]

from sqlalchemy import (
    Column, String, BigInteger, Integer, Float, Text, DateTime, JSON, Index, Boolean
)
from sqlalchemy.dialects.postgresql import JSONB
from models.base import Base
from core.clock import utcnow

# BIGSERIAL on PostgreSQL, INTEGER PRIMARY KEY (rowid alias) on SQLite
PrimaryKeyType = BigInteger().with_variant(Integer(), "sqlite")
PhotoListType = JSON().with_variant(JSONB(), "postgresql")


class Property(Base):
    """
    One row per listing, keyed by the MLS listing number.

    Field Mapping (RESO Web API -> column):
    - ListingId -> mls_number (natural key, unique)
    - ListingKey -> listing_key
    - ListPrice -> list_price
    - StandardStatus -> status (normalized) and standard_status (verbatim)
    - MlsStatus -> mls_status
    - UnparsedAddress | StreetNumber + StreetName -> street_address
    - City / StateOrProvince / PostalCode -> city / state / zip_code
    - BedroomsTotal -> bedrooms
    - BathroomsTotalInteger | BathroomsTotal -> bathrooms
    - LivingArea -> square_feet
    - LotSizeArea -> lot_size
    - Media[].MediaURL -> photos (JSON array)
    - ListingContractDate -> listing_date
    - ModificationTimestamp -> modification_timestamp

    listing_date is the contract date. Without one the first-seen instant is
    stored and flagged as estimated until a real contract date arrives.

    last_updated is local sync time: the loader overwrites it on every upsert
    and the pipeline uses its maximum as the extraction watermark.
    """
    __tablename__ = "properties"

    id = Column(PrimaryKeyType, primary_key=True, autoincrement=True)
    mls_number = Column(String(64), nullable=False, unique=True)
    listing_key = Column(String(128), nullable=True)

    # Address
    street_address = Column(String(255), nullable=True)
    city = Column(String(120), nullable=True, index=True)
    state = Column(String(64), nullable=True)
    zip_code = Column(String(20), nullable=True)

    # Classification
    property_type = Column(String(100), nullable=True)
    property_sub_type = Column(String(100), nullable=True)

    # Price and dimensions
    list_price = Column(Float, nullable=False)
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Float, nullable=True)
    square_feet = Column(Integer, nullable=True)
    lot_size = Column(Float, nullable=True)
    year_built = Column(Integer, nullable=True)

    description = Column(Text, nullable=True)
    photos = Column(PhotoListType, nullable=False, default=list)

    # Status
    status = Column(String(32), nullable=False, index=True)
    standard_status = Column(String(64), nullable=False)
    mls_status = Column(String(64), nullable=True)

    # Misc RESO fields
    tax_id = Column(String(100), nullable=True)
    virtual_tour_url = Column(String(2048), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    # Timestamps
    listing_date = Column(DateTime, nullable=True)
    # True while listing_date is the first-seen instant standing in for a contract date
    listing_date_estimated = Column(Boolean, nullable=False, default=False)
    modification_timestamp = Column(DateTime, nullable=True)
    days_on_market = Column(Integer, nullable=True)
    last_updated = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_properties_last_updated", "last_updated"),
    )

    def __repr__(self) -> str:
        return f"<Property {self.mls_number} {self.status} {self.list_price}>"

from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class ListingStatus(str, enum.Enum):
    """Normalized listing lifecycle status"""
    ACTIVE = "Active"
    PENDING = "Pending"
    SOLD = "Sold"
    EXPIRED = "Expired"
    WITHDRAWN = "Withdrawn"
    CANCELED = "Canceled"
    COMING_SOON = "Coming Soon"


# Upstream StandardStatus spellings (lower-cased) -> normalized status
STATUS_ALIASES = {
    "active": ListingStatus.ACTIVE,
    "pending": ListingStatus.PENDING,
    "active under contract": ListingStatus.PENDING,
    "sold": ListingStatus.SOLD,
    "closed": ListingStatus.SOLD,
    "expired": ListingStatus.EXPIRED,
    "withdrawn": ListingStatus.WITHDRAWN,
    "canceled": ListingStatus.CANCELED,
    "cancelled": ListingStatus.CANCELED,
    "coming soon": ListingStatus.COMING_SOON,
}

"""
Transform RESO listing records into the canonical PropertyCreate shape
"""

import math
from typing import Dict, Any, Optional, List
from datetime import datetime
from pydantic import ValidationError
from schemas.property import PropertyCreate
from models.base import STATUS_ALIASES
from core.clock import Clock, utcnow, parse_datetime
from core.exceptions import TransformError
import logging

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


class PropertyTransformer:
    """
    Map upstream listing records to canonical records.

    Pure apart from the injected clock, which only affects days_on_market.

    Handles:
    - Schema mapping
    - Type conversion
    - Status normalization
    - Required-field checks (ListingId, ListPrice, StandardStatus)
    """

    REQUIRED_FIELDS = ("ListPrice", "StandardStatus")

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    def transform(self, record: Dict[str, Any]) -> PropertyCreate:
        """
        Transform one upstream record.

        Raises:
            TransformError: natural key, price or status is missing, or the
                mapped record fails validation
        """
        mls_number = self._first_present(record, "ListingId", "ListingKey")
        missing = [name for name in self.REQUIRED_FIELDS if self._is_blank(record.get(name))]
        if mls_number is None:
            missing.insert(0, "ListingId")
        if missing:
            raise TransformError(
                f"Listing is missing required fields: {', '.join(missing)}",
                raw_record=record,
                context={"listing_id": mls_number, "missing_fields": missing}
            )

        listing_date = parse_datetime(record.get("ListingContractDate"))
        raw_status = record["StandardStatus"]

        try:
            return PropertyCreate(
                mls_number=str(mls_number),
                listing_key=self._parse_str(record.get("ListingKey"), max_length=128),
                street_address=self._street_address(record),
                city=self._parse_str(record.get("City"), max_length=120),
                state=self._parse_str(record.get("StateOrProvince"), max_length=64),
                zip_code=self._parse_str(record.get("PostalCode"), max_length=20),
                property_type=self._parse_str(record.get("PropertyType"), max_length=100),
                property_sub_type=self._parse_str(record.get("PropertySubType"), max_length=100),
                list_price=record["ListPrice"],
                bedrooms=self._parse_int(record.get("BedroomsTotal"), minimum=0),
                bathrooms=self._parse_float(
                    self._first_present(record, "BathroomsTotalInteger", "BathroomsTotal"),
                    minimum=0
                ),
                square_feet=self._parse_int(record.get("LivingArea"), minimum=0),
                lot_size=self._parse_float(record.get("LotSizeArea"), minimum=0),
                year_built=self._parse_int(record.get("YearBuilt")),
                description=self._parse_str(record.get("PublicRemarks")),
                photos=self._photos(record.get("Media")),
                status=self.normalize_status(str(raw_status)),
                standard_status=raw_status,
                mls_status=self._parse_str(record.get("MlsStatus"), max_length=64),
                tax_id=self._parse_str(record.get("TaxParcelIdentification"), max_length=100),
                virtual_tour_url=self._parse_str(record.get("VirtualTourURLUnbranded"), max_length=2048),
                latitude=self._parse_float(record.get("Latitude"), minimum=-90, maximum=90),
                longitude=self._parse_float(record.get("Longitude"), minimum=-180, maximum=180),
                listing_date=listing_date,
                modification_timestamp=parse_datetime(record.get("ModificationTimestamp")),
                days_on_market=self.days_on_market(listing_date),
            )
        except ValidationError as e:
            raise TransformError(
                f"Listing {mls_number} failed validation",
                raw_record=record,
                context={"listing_id": mls_number, "error_count": e.error_count()},
                original_exception=e
            )

    def transform_batch(self, records: List[Dict[str, Any]]) -> List[PropertyCreate]:
        """All-or-nothing: the first TransformError aborts the whole batch"""
        return [self.transform(record) for record in records]

    def days_on_market(self, listing_date: Optional[datetime]) -> Optional[int]:
        """Ceiling of elapsed days since the contract date; None without one"""
        if listing_date is None:
            return None
        # A contract date in the future counts as days on market too
        elapsed = abs((self.clock() - listing_date).total_seconds())
        return math.ceil(elapsed / SECONDS_PER_DAY)

    @staticmethod
    def normalize_status(raw_status: str) -> str:
        """Map upstream StandardStatus spellings onto the lifecycle vocabulary"""
        cleaned = raw_status.strip()
        status = STATUS_ALIASES.get(cleaned.lower())
        return status.value if status else cleaned

    def _street_address(self, record: Dict[str, Any]) -> Optional[str]:
        unparsed = self._parse_str(record.get("UnparsedAddress"), max_length=255)
        if unparsed:
            return unparsed
        composed = f"{record.get('StreetNumber') or ''} {record.get('StreetName') or ''}".strip()
        return self._parse_str(composed, max_length=255)

    @staticmethod
    def _photos(media: Any) -> List[str]:
        if not isinstance(media, list):
            return []
        urls = []
        for item in media:
            url = item.get("MediaURL") if isinstance(item, dict) else None
            if isinstance(url, str) and url.strip():
                urls.append(url)
        return urls

    @staticmethod
    def _is_blank(value: Any) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())

    @classmethod
    def _first_present(cls, record: Dict[str, Any], *names: str) -> Any:
        for name in names:
            if not cls._is_blank(record.get(name)):
                return record[name]
        return None

    @staticmethod
    def _parse_str(value: Any, max_length: Optional[int] = None) -> Optional[str]:
        """Trimmed text; None when empty or longer than the column allows"""
        if value is None:
            return None
        value = str(value).strip()
        if not value or (max_length is not None and len(value) > max_length):
            return None
        return value

    @staticmethod
    def _parse_float(
        value: Any,
        minimum: Optional[float] = None,
        maximum: Optional[float] = None
    ) -> Optional[float]:
        """Safely parse float value; out-of-range or non-finite input is None"""
        if value is None or value == "" or isinstance(value, bool):
            return None
        try:
            parsed = float(value)
        except (ValueError, TypeError):
            return None
        if not math.isfinite(parsed):
            return None
        if (minimum is not None and parsed < minimum) or (maximum is not None and parsed > maximum):
            return None
        return parsed

    @classmethod
    def _parse_int(cls, value: Any, minimum: Optional[int] = None) -> Optional[int]:
        """Safely parse int value, rounding fractional input"""
        parsed = cls._parse_float(value, minimum=minimum)
        return None if parsed is None else int(round(parsed))

"""
Water Spot Entity
Closed ward/category sets, validated immutable records and batch construction
"""

import logging
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from water_spots.errors import UpstreamError, ValidationError
from water_spots.utils.geo import format_distance
from water_spots.utils.hours import hours_summary, is_open

logger = logging.getLogger(__name__)

ALL = 'all'


class Ward(str, Enum):
    """Administrative wards of Kawasaki city, in partition scan order"""

    KAWASAKI = '川崎区'
    NAKAHARA = '中原区'
    TAKATSU = '高津区'
    MIYAMAE = '宮前区'
    TAMA = '多摩区'
    ASAO = '麻生区'
    SAIWAI = '幸区'


class Category(str, Enum):
    """Facility types that host a water spot"""

    CITY_HALL = '市庁舎'
    WARD_OFFICE = '区役所'
    CITY_LIBRARY = '市立図書館'
    SPORTS_FACILITY = 'スポーツ施設'
    CIVIC_HALL = '市民館'
    ENVIRONMENTAL_LEARNING = '環境学習施設'
    CHILDREN_CULTURE_CENTER = 'こども文化センター'
    SENIOR_CENTER = 'いこいの家'
    BRANCH_OFFICE = '出張所'
    SCIENCE_MUSEUM = '科学館'
    MUSEUM = '博物館'
    AGRICULTURAL_FACILITY = '農業施設'
    HEATED_POOL = '温水プール'
    PARTNER_STORE = '民間協力店舗'
    BRANCH_LIBRARY = '分館'
    COMMUNITY_FACILITY = 'コミュニティ施設'
    WELFARE_FACILITY = '福祉施設'


CATEGORY_ICONS = {
    Category.CITY_HALL: '🏛️',
    Category.WARD_OFFICE: '🏢',
    Category.CITY_LIBRARY: '📚',
    Category.SPORTS_FACILITY: '🏃',
    Category.CIVIC_HALL: '🏛️',
    Category.ENVIRONMENTAL_LEARNING: '🌿',
    Category.CHILDREN_CULTURE_CENTER: '🎨',
    Category.SENIOR_CENTER: '🏠',
    Category.BRANCH_OFFICE: '🏢',
    Category.SCIENCE_MUSEUM: '🔬',
    Category.MUSEUM: '🏺',
    Category.AGRICULTURAL_FACILITY: '🌾',
    Category.HEATED_POOL: '🏊',
    Category.PARTNER_STORE: '🏪',
    Category.BRANCH_LIBRARY: '📚',
    Category.COMMUNITY_FACILITY: '🏘️',
    Category.WELFARE_FACILITY: '🏥',
}
DEFAULT_ICON = '🚰'


def _coerce_text(value):
    """Optional free text: numbers become strings, other types are rejected"""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ValueError('must be text')


class Coordinates(BaseModel):
    """
    WGS84 coordinate pair
    """
    latitude: float = Field(..., ge=-90, le=90, allow_inf_nan=False, description="Latitude")
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False, description="Longitude")

    model_config = ConfigDict(frozen=True)

    @field_validator('latitude', 'longitude', mode='before')
    @classmethod
    def must_be_number(cls, v):
        """Reject strings and booleans instead of coercing them"""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError('must be a number')
        return v


class OperatingHours(BaseModel):
    """
    Operating hours per day group

    Each value is either "HH:MM-HH:MM" or free text such as "要確認".
    """
    mon_fri: Optional[str] = Field(None, description="Weekdays")
    sat: Optional[str] = Field(None, description="Saturday")
    sun_hol: Optional[str] = Field(None, description="Sunday and holidays")
    mon_sun: Optional[str] = Field(None, description="Every day")
    closed: Optional[str] = Field(None, description="Closing days")
    type: Optional[str] = Field(None, description="Free-text fallback")

    model_config = ConfigDict(frozen=True, extra='allow')

    @field_validator('mon_fri', 'sat', 'sun_hol', 'mon_sun', 'closed', 'type', mode='before')
    @classmethod
    def text_only(cls, v):
        return _coerce_text(v)


class WaterSpot(BaseModel):
    """
    Public drinking-water refill spot

    Immutable once constructed. `distance_km` is a per-request view attribute:
    it is excluded from serialization and from equality.
    """
    id: str = Field(..., description="Opaque unique identifier")
    name: str = Field(..., description="Facility name")
    category: Category = Field(..., description="Facility type")
    ward: Ward = Field(..., description="Ward the facility belongs to")
    address: Optional[str] = None
    install_location: Optional[str] = Field(None, description="Where the tap is inside the facility")
    description: Optional[str] = None
    access: Optional[str] = Field(None, description="Access notes")
    facilities: Optional[Union[str, List[str]]] = None
    notes: Optional[str] = None
    updated: Optional[str] = None
    location: Coordinates = Field(..., description="Facility coordinates")
    hours: Optional[OperatingHours] = None

    distance_km: Optional[float] = Field(None, exclude=True, description="Distance from the user in km")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='ignore')

    @field_validator('id', 'name', mode='before')
    @classmethod
    def required_text(cls, v):
        """id and name must be non-blank strings"""
        if not isinstance(v, str):
            raise ValueError('must be a string')
        if not v.strip():
            raise ValueError('must not be empty')
        return v.strip()

    @field_validator('address', 'install_location', 'description', 'access', 'notes', 'updated',
                     mode='before')
    @classmethod
    def optional_text(cls, v):
        return _coerce_text(v)

    @field_validator('hours', mode='before')
    @classmethod
    def normalize_hours(cls, v):
        """A bare string is treated as free-text hours"""
        if isinstance(v, str):
            return {'type': v} if v.strip() else None
        return v

    # ========================================
    # IDENTITY
    # ========================================

    def __eq__(self, other):
        if not isinstance(other, WaterSpot):
            return NotImplemented
        return self.to_record() == other.to_record()

    def __hash__(self):
        return hash(self.id)

    # ========================================
    # VIEW HELPERS
    # ========================================

    @property
    def icon(self) -> str:
        return CATEGORY_ICONS.get(self.category, DEFAULT_ICON)

    def hours_summary(self) -> str:
        return hours_summary(self.hours)

    def is_currently_open(self, at: Optional[datetime] = None) -> Optional[bool]:
        """True/False, or None when the status cannot be determined"""
        return is_open(self.hours, at)

    def with_distance(self, km: Optional[float]) -> 'WaterSpot':
        """Copy carrying a request-specific distance"""
        return self.model_copy(update={'distance_km': km})

    def formatted_distance(self) -> Optional[str]:
        if self.distance_km is None:
            return None
        return format_distance(self.distance_km)

    # ========================================
    # PROJECTIONS
    # ========================================

    def to_record(self) -> Dict[str, Any]:
        """Plain JSON-safe dict in the raw record shape (no distance)"""
        return self.model_dump(mode='json', exclude_none=True)

    def to_light(self) -> Dict[str, Any]:
        """Reduced field set for list views"""
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category.value,
            'ward': self.ward.value,
            'address': self.address,
            'location': self.location.model_dump(),
            'hours_summary': self.hours_summary(),
            'icon': self.icon,
            'distance': self.distance_km,
            'formatted_distance': self.formatted_distance(),
        }

    def to_detailed(self, at: Optional[datetime] = None) -> Dict[str, Any]:
        """Full field set plus computed open/closed status"""
        return {
            **self.to_light(),
            'install_location': self.install_location,
            'hours': self.hours.model_dump(exclude_none=True) if self.hours else None,
            'description': self.description,
            'access': self.access,
            'facilities': self.facilities,
            'notes': self.notes,
            'updated': self.updated,
            'is_currently_open': self.is_currently_open(at),
        }


class SpotBatch(NamedTuple):
    """Valid spots from a batch plus the number of rejected records"""
    spots: List[WaterSpot]
    skipped: int


def _format_errors(error: PydanticValidationError) -> Dict[str, str]:
    errors = {}
    for err in error.errors():
        field = '.'.join(str(part) for part in err['loc']) or 'record'
        errors.setdefault(field, err['msg'])
    return errors


def create_spot(raw: Mapping) -> WaterSpot:
    """
    Build a WaterSpot from a raw record

    Args:
        raw: Record shaped like {id, name, category, ward, location: {...}, ...}

    Returns:
        Validated WaterSpot

    Raises:
        ValidationError: If a mandatory field is missing or invalid
    """
    if not isinstance(raw, Mapping):
        raise ValidationError({'record': 'must be a mapping'}, message='Invalid water spot')

    try:
        return WaterSpot.model_validate(dict(raw))
    except PydanticValidationError as e:
        record_id = raw.get('id')
        raise ValidationError(
            _format_errors(e),
            message=f"Invalid water spot '{record_id}'" if record_id else 'Invalid water spot',
            record_id=record_id if isinstance(record_id, str) else None,
        ) from e


def create_spots(raw_records: Iterable[Mapping]) -> SpotBatch:
    """
    Build WaterSpots from a batch, skipping invalid records

    Args:
        raw_records: Iterable of raw records

    Returns:
        SpotBatch with the valid spots and the skipped count

    Raises:
        UpstreamError: If raw_records is a single value instead of a list
    """
    if raw_records is None:
        return SpotBatch(spots=[], skipped=0)
    if isinstance(raw_records, (str, bytes, Mapping)):
        raise UpstreamError(
            f"Water spot records must be a list, got {type(raw_records).__name__}"
        )

    spots = []
    skipped = 0

    for raw in raw_records:
        try:
            spots.append(create_spot(raw))
        except ValidationError as e:
            skipped += 1
            logger.warning("Skipping invalid water spot record: %s", e.message)

    return SpotBatch(spots=spots, skipped=skipped)

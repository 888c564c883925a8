# Pydantic models (request/response DTOs) used by the API layer.
# Input normalisation lives in validators here; business rules live in keyat.tours / keyat.search.
import re
from datetime import date, datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .roles import ROLE_ALIASES, Role, normalize_role
from .tours import TourStatus

PropertyStatus = Literal["available", "rented", "maintenance", "unavailable"]
PropertyType = Literal["apartment", "house", "townhouse", "condo", "commercial"]
ServiceCategory = Literal[
    "cleaning",
    "maintenance",
    "moving",
    "plumbing",
    "electrical",
    "pest-control",
    "gardening",
]
# Roles a visitor may pick at registration; admins are provisioned out of band
SignupRole = Literal["consumer", "landlord", "agent", "service_provider"]

_PHONE_RE = re.compile(r"^7[1-9]\d{6}$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def normalize_phone(v: Optional[str]) -> Optional[str]:
    """Botswana mobile number: optional +267 prefix, spaces ignored, 8 digits starting 71-79."""
    if v is None:
        return None
    cleaned = re.sub(r"[\s-]", "", v)
    if not cleaned:
        return None
    if cleaned.startswith("+267"):
        cleaned = cleaned[4:]
    if not _PHONE_RE.match(cleaned):
        raise ValueError("Valid Botswana number required (e.g., 71 123 456)")
    return cleaned


def _strip(v):
    if isinstance(v, str):
        v = v.strip()
    return v


def _not_null(v):
    # Optional in a PATCH body means "may be omitted", not "may be cleared"
    if v is None:
        raise ValueError("may not be null")
    return v


def _lower_email(v):
    if isinstance(v, str):
        v = v.strip().lower()
    return v


def _normalize_features(v):
    # Lowercased, blank-free, first occurrence wins
    if isinstance(v, list):
        seen: List[str] = []
        for item in v:
            if isinstance(item, str) and item.strip() and item.strip().lower() not in seen:
                seen.append(item.strip().lower())
        return seen
    return v


# Authentication and session


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: SignupRole = "consumer"
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _lower_email(v)

    # Accept the tags older clients send ("tenant", "service")
    @field_validator("role", mode="before")
    @classmethod
    def normalize_signup_role(cls, v):
        if isinstance(v, str):
            tag = v.strip().lower()
            return ROLE_ALIASES.get(tag, tag)
        return v

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if not re.search(r"[a-z]", v):
            raise ValueError("Include lowercase letter")
        if not re.search(r"[A-Z]", v):
            raise ValueError("Include uppercase letter")
        if not re.search(r"\d", v):
            raise ValueError("Include number")
        return v

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, v):
        return _strip(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _lower_email(v)


class UserRead(BaseModel):
    id: int
    email: EmailStr
    role: Role

    model_config = ConfigDict(from_attributes=True)

    @field_validator("role", mode="before")
    @classmethod
    def coerce_role(cls, v):
        return normalize_role(v)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
    dashboard_path: str


# Profiles


class ProfileRead(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Role = "consumer"
    avatar_url: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    id_verified: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("role", mode="before")
    @classmethod
    def coerce_role(cls, v):
        return normalize_role(v)


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("first_name", "last_name", "location", "bio", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)


# Navigation


class NavItemRead(BaseModel):
    label: str
    href: str


class NavigationRead(BaseModel):
    name: str
    role: Role
    items: List[NavItemRead]
    dashboard_path: str


class SessionRead(BaseModel):
    user: UserRead
    profile: ProfileRead
    profile_found: bool
    role: Role
    dashboard_path: str
    navigation: NavigationRead


# Properties


class PropertyBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    location: str = Field(..., min_length=1, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    # Whole Pula per month
    price: int = Field(..., gt=0, le=1_000_000)
    property_type: PropertyType = "apartment"
    bedrooms: Optional[int] = Field(default=None, ge=0, le=50)
    bathrooms: Optional[float] = Field(default=None, ge=0, le=50)
    area: Optional[int] = Field(default=None, ge=0)
    features: List[str] = Field(default_factory=list)

    @field_validator("title", "location", "city", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("features", mode="before")
    @classmethod
    def normalize_features(cls, v):
        return _normalize_features(v)


class PropertyCreate(PropertyBase):
    status: PropertyStatus = "available"
    agent_id: Optional[int] = Field(default=None, ge=1)


class PropertyUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    location: Optional[str] = Field(default=None, min_length=1, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    price: Optional[int] = Field(default=None, gt=0, le=1_000_000)
    property_type: Optional[PropertyType] = None
    bedrooms: Optional[int] = Field(default=None, ge=0, le=50)
    bathrooms: Optional[float] = Field(default=None, ge=0, le=50)
    area: Optional[int] = Field(default=None, ge=0)
    features: Optional[List[str]] = None
    status: Optional[PropertyStatus] = None
    agent_id: Optional[int] = Field(default=None, ge=1)

    @field_validator("title", "location", "city", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("title", "location", "price", "property_type", "features", "status", mode="before")
    @classmethod
    def reject_null(cls, v):
        return _not_null(v)

    @field_validator("features", mode="before")
    @classmethod
    def normalize_features(cls, v):
        return _normalize_features(v)


class PropertyStatusUpdate(BaseModel):
    status: PropertyStatus


class PropertyRead(PropertyBase):
    id: int
    owner_id: Optional[int] = None
    agent_id: Optional[int] = None
    currency: str = "BWP"
    status: PropertyStatus
    images: List[str] = Field(default_factory=list)
    is_featured: bool = False
    rating: Optional[float] = None
    views: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    # Reads skip the create-time price ceiling
    price: int = Field(..., ge=0)


class PropertyDetail(PropertyRead):
    landlord_name: Optional[str] = None
    landlord_phone: Optional[str] = None
    agent_name: Optional[str] = None
    agent_phone: Optional[str] = None


class PropertySearchResponse(BaseModel):
    items: List[PropertyRead]
    total: int
    sort: str
    active_filters: int


class ImageUploadResponse(BaseModel):
    property_id: int
    images: List[str]
    uploaded: int
    failed: int


# Tours


class TourCreate(BaseModel):
    property_id: int = Field(..., ge=1)
    preferred_date: date
    viewing_time: str
    notes: Optional[str] = Field(default=None, max_length=1000)
    meeting_point: Optional[str] = Field(default=None, max_length=255)
    duration: int = Field(default=30, ge=15, le=240)

    @field_validator("viewing_time", mode="before")
    @classmethod
    def check_time(cls, v):
        v = _strip(v)
        if not isinstance(v, str) or not _TIME_RE.match(v):
            raise ValueError("viewing_time must be HH:MM (24h)")
        return v

    @field_validator("notes", "meeting_point", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        v = _strip(v)
        return v or None


class TourReschedule(BaseModel):
    preferred_date: date
    viewing_time: str

    @field_validator("viewing_time", mode="before")
    @classmethod
    def check_time(cls, v):
        v = _strip(v)
        if not isinstance(v, str) or not _TIME_RE.match(v):
            raise ValueError("viewing_time must be HH:MM (24h)")
        return v


class TourRead(BaseModel):
    id: int
    property_id: int
    tenant_id: int
    agent_id: Optional[int] = None
    preferred_date: datetime
    viewing_time: str
    notes: Optional[str] = None
    status: TourStatus
    meeting_point: Optional[str] = None
    duration: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TourDetail(TourRead):
    property_title: str = "Unknown Property"
    property_location: str = "Location not specified"
    property_image: Optional[str] = None
    property_price: int = 0
    property_beds: int = 0
    property_baths: float = 0
    property_area: Optional[int] = None
    agent_name: str
    agent_phone: str
    agent_email: Optional[str] = None


# Services marketplace


class ServiceProviderBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: ServiceCategory
    description: str = Field(default="", max_length=5000)
    price_range: Optional[str] = Field(default=None, max_length=100)
    response_time: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=255)
    services: List[str] = Field(default_factory=list)
    experience: Optional[str] = Field(default=None, max_length=100)
    languages: List[str] = Field(default_factory=list)
    availability: Optional[str] = Field(default=None, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return _strip(v)


class ServiceProviderCreate(ServiceProviderBase):
    pass


class ServiceProviderUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    category: Optional[ServiceCategory] = None
    description: Optional[str] = Field(default=None, max_length=5000)
    price_range: Optional[str] = Field(default=None, max_length=100)
    response_time: Optional[str] = Field(default=None, max_length=100)
    location: Optional[str] = Field(default=None, max_length=255)
    services: Optional[List[str]] = None
    experience: Optional[str] = Field(default=None, max_length=100)
    languages: Optional[List[str]] = None
    availability: Optional[str] = Field(default=None, max_length=100)

    @field_validator("name", "category", "description", "services", "languages", mode="before")
    @classmethod
    def reject_null(cls, v):
        return _not_null(v)


class ServiceProviderRead(ServiceProviderBase):
    id: int
    owner_id: Optional[int] = None
    rating: float = 0.0
    reviews: int = 0
    verified: bool = False
    featured: bool = False

    model_config = ConfigDict(from_attributes=True)


class ServiceCategoryCount(BaseModel):
    id: str
    count: int


# Dashboards


class DashboardRead(BaseModel):
    role: Role
    stats: Dict[str, Union[int, float]]

# jogofacil/schemas.py
from __future__ import annotations

from datetime import date as Date
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from jogofacil.booking_rules import parse_hhmm
from jogofacil.models import MatchType, SlotStatus, SubscriptionPlan, UserRole

# The SPA speaks camelCase; accept snake_case too for scripts and tests.
CAMEL = {"alias_generator": to_camel, "populate_by_name": True, "from_attributes": True}


class CamelModel(BaseModel):
    model_config = CAMEL


# ------------------------------------------------------------------
# SUB-TEAMS
# ------------------------------------------------------------------

class SubTeamIn(CamelModel):
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    logo_url: Optional[str] = None

    @field_validator("name", "category")
    @classmethod
    def _strip(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class SubTeamOut(CamelModel):
    id: str
    name: str
    category: str
    logo_url: Optional[str] = None


# ------------------------------------------------------------------
# FIELDS
# ------------------------------------------------------------------

class PixConfig(CamelModel):
    key: str = ""
    name: str = ""


class FieldData(CamelModel):
    name: str = Field(min_length=1)
    location: Optional[str] = None
    hourly_rate: float = Field(default=0.0, ge=0)
    cancellation_fee_percent: float = Field(default=0.0, ge=0, le=100)
    pix_config: PixConfig = PixConfig()
    contact_phone: Optional[str] = None
    image_url: Optional[str] = None


class FieldUpdate(CamelModel):
    name: Optional[str] = None
    location: Optional[str] = None
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    cancellation_fee_percent: Optional[float] = Field(default=None, ge=0, le=100)
    pix_config: Optional[PixConfig] = None
    contact_phone: Optional[str] = None
    image_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class FieldOut(CamelModel):
    id: str
    owner_id: str
    name: str
    location: Optional[str] = None
    hourly_rate: float
    cancellation_fee_percent: float
    pix_config: PixConfig
    image_url: Optional[str] = None
    contact_phone: Optional[str] = None
    latitude: float
    longitude: float


# ------------------------------------------------------------------
# USERS / AUTH
# ------------------------------------------------------------------

class UserLogin(CamelModel):
    # Plain str: a malformed address is just an unknown login (401).
    email: str
    password: str


class UserRegister(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)
    name: str = Field(min_length=1)
    role: UserRole = UserRole.team_captain
    phone_number: Optional[str] = None
    subscription: Optional[SubscriptionPlan] = None
    subscription_expiry: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    sub_teams: List[SubTeamIn] = []
    field_data: Optional[FieldData] = None


class UserUpdate(CamelModel):
    name: Optional[str] = None
    phone_number: Optional[str] = None
    subscription: Optional[SubscriptionPlan] = None
    sub_teams: Optional[List[SubTeamIn]] = None


class UserOut(CamelModel):
    id: str
    name: str
    email: str
    phone_number: Optional[str] = None
    role: UserRole
    subscription: SubscriptionPlan
    subscription_expiry: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    sub_teams: List[SubTeamOut] = []
    created_at: Optional[datetime] = None


class AuthResponse(UserOut):
    access_token: str
    token_type: str = "bearer"


# ------------------------------------------------------------------
# SUBSCRIPTIONS
# ------------------------------------------------------------------

class SubscribeRequest(CamelModel):
    plan: SubscriptionPlan


class PlanOut(CamelModel):
    id: SubscriptionPlan
    name: str
    price: float
    price_label: str
    period: str
    days: int
    features: List[str] = []


# ------------------------------------------------------------------
# SLOTS
# ------------------------------------------------------------------

class SlotCreate(CamelModel):
    field_id: str
    date: Date
    time: str
    duration_minutes: int = Field(default=60, ge=1, le=24 * 60)
    match_type: MatchType = MatchType.amistoso
    has_local_team: bool = False
    local_team_name: Optional[str] = None
    allowed_categories: List[str] = []
    price: Optional[float] = Field(default=None, ge=0)
    status: SlotStatus = SlotStatus.available
    is_booked: bool = False
    recurring: bool = False

    @field_validator("time")
    @classmethod
    def _valid_time(cls, value: str) -> str:
        return parse_hhmm(value).strftime("%H:%M")


# Slot attributes a raw update may change but never clear.
SLOT_REQUIRED_ATTRS = (
    "date",
    "time",
    "duration_minutes",
    "match_type",
    "is_booked",
    "has_local_team",
    "status",
    "price",
)


class SlotUpdate(CamelModel):
    date: Optional[Date] = None
    time: Optional[str] = None
    duration_minutes: Optional[int] = None
    match_type: Optional[MatchType] = None
    is_booked: Optional[bool] = None
    has_local_team: Optional[bool] = None
    local_team_name: Optional[str] = None
    allowed_categories: Optional[List[str]] = None
    booked_by_team_name: Optional[str] = None
    booked_by_user_id: Optional[str] = None
    booked_by_phone: Optional[str] = None
    booked_by_category: Optional[str] = None
    opponent_team_name: Optional[str] = None
    opponent_team_phone: Optional[str] = None
    status: Optional[SlotStatus] = None
    price: Optional[float] = None

    @field_validator("time")
    @classmethod
    def _valid_time(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return parse_hhmm(value).strftime("%H:%M")

    @model_validator(mode="after")
    def _no_null_for_required(self):
        cleared = sorted(k for k in SLOT_REQUIRED_ATTRS if k in self.model_fields_set and getattr(self, k) is None)
        if cleared:
            raise ValueError(f"cannot be null: {', '.join(cleared)}")
        return self


class SlotOut(CamelModel):
    id: str
    field_id: str
    date: Date
    time: str
    duration_minutes: int = 60
    match_type: str
    is_booked: bool
    has_local_team: bool
    local_team_name: Optional[str] = None
    allowed_categories: List[str] = []
    booked_by_team_name: Optional[str] = None
    booked_by_user_id: Optional[str] = None
    booked_by_phone: Optional[str] = None
    booked_by_category: Optional[str] = None
    opponent_team_name: Optional[str] = None
    opponent_team_phone: Optional[str] = None
    status: str
    price: float


class BookRequest(CamelModel):
    sub_team_id: str
    opponent_team_name: Optional[str] = None
    opponent_team_phone: Optional[str] = None


class BookingResponse(CamelModel):
    slot: SlotOut
    whatsapp_url: Optional[str] = None


class VerificationResult(CamelModel):
    is_valid: bool
    amount_found: Optional[float] = None
    date_found: Optional[str] = None
    reason: str

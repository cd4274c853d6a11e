# jogofacil/models.py
from sqlalchemy import Column, Integer, String, DateTime, Date, ForeignKey, Enum, Float, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
import uuid
from jogofacil.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class UserRole(str, enum.Enum):
    guest = "GUEST"
    admin = "ADMIN"
    field_owner = "FIELD_OWNER"
    team_captain = "TEAM_CAPTAIN"


class SubscriptionPlan(str, enum.Enum):
    none = "NONE"
    free = "FREE"  # field owners
    weekly = "WEEKLY"  # avulso
    monthly = "MONTHLY"
    annual = "ANNUAL"


class SlotStatus(str, enum.Enum):
    available = "available"
    pending_verification = "pending_verification"
    confirmed = "confirmed"


class MatchType(str, enum.Enum):
    amistoso = "AMISTOSO"
    festival = "FESTIVAL"
    aluguel = "ALUGUEL"  # rental, no home team


COMMON_CATEGORIES = ["Sub-09", "Sub-11", "Sub-13", "Sub-15", "Sub-17", "Sub-20", "Principal", "Veteranos", "Feminino"]
OPEN_CATEGORY = "Livre"

DEFAULT_LATITUDE = -23.55
DEFAULT_LONGITUDE = -46.63
DEFAULT_FIELD_IMAGE = "https://images.unsplash.com/photo-1529900748604-07564a03e7a6?q=80&w=1470&auto=format&fit=crop"


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(120), nullable=False)
    email = Column(String(200), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    phone_number = Column(String(50), nullable=True)
    role = Column(Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]), default=UserRole.team_captain)
    subscription = Column(
        Enum(SubscriptionPlan, name="subscription_plan", values_callable=lambda e: [m.value for m in e]),
        default=SubscriptionPlan.none,
    )
    subscription_expiry = Column(DateTime, nullable=True)
    latitude = Column(Float, default=DEFAULT_LATITUDE)
    longitude = Column(Float, default=DEFAULT_LONGITUDE)
    created_at = Column(DateTime, default=datetime.utcnow)

    sub_teams = relationship(
        "SubTeam",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="SubTeam.name",
    )
    fields = relationship("Field", back_populates="owner")


class SubTeam(Base):
    __tablename__ = "sub_teams"
    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(120), nullable=False)
    category = Column(String(40), nullable=False)  # e.g. "Sub-20", "Principal"
    logo_url = Column(String(500), nullable=True)

    user = relationship("User", back_populates="sub_teams")


class Field(Base):
    __tablename__ = "fields"
    id = Column(String(36), primary_key=True, default=_uuid)
    owner_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    location = Column(String(300), nullable=True)
    hourly_rate = Column(Float, default=0.0)
    cancellation_fee_percent = Column(Float, default=0.0)
    pix_key = Column(String(200), nullable=True)
    pix_name = Column(String(200), nullable=True)
    image_url = Column(String(500), default=DEFAULT_FIELD_IMAGE)
    contact_phone = Column(String(50), nullable=True)
    latitude = Column(Float, default=DEFAULT_LATITUDE)
    longitude = Column(Float, default=DEFAULT_LONGITUDE)
    created_at = Column(DateTime, default=datetime.utcnow)

    owner = relationship("User", back_populates="fields")
    slots = relationship("MatchSlot", back_populates="field", cascade="all, delete-orphan")


class MatchSlot(Base):
    __tablename__ = "match_slots"
    id = Column(String(36), primary_key=True, default=_uuid)
    field_id = Column(String(36), ForeignKey("fields.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(5), nullable=False)  # HH:MM
    duration_minutes = Column(Integer, default=60)
    match_type = Column(String(20), default=MatchType.amistoso.value)
    is_booked = Column(Boolean, default=False)

    # Host team
    has_local_team = Column(Boolean, default=False)
    local_team_name = Column(String(120), nullable=True)
    allowed_categories = Column(JSON, default=lambda: [OPEN_CATEGORY])

    # Booker snapshot
    booked_by_team_name = Column(String(120), nullable=True)
    booked_by_user_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    booked_by_phone = Column(String(50), nullable=True)
    booked_by_category = Column(String(40), nullable=True)
    opponent_team_name = Column(String(120), nullable=True)
    opponent_team_phone = Column(String(50), nullable=True)

    status = Column(String(30), default=SlotStatus.available.value, index=True)
    price = Column(Float, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)

    field = relationship("Field", back_populates="slots")

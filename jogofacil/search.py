from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from jogofacil import models
from jogofacil.booking_rules import allows_category, parse_hhmm

EARTH_RADIUS_KM = 6371.0
DEFAULT_RADIUS_KM = 50.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def normalize_period(value: Optional[str]) -> str:
    value = (value or "").strip().upper()
    if value in {"MORNING", "MANHA", "MANHÃ"}:
        return "MORNING"
    if value in {"AFTERNOON", "TARDE"}:
        return "AFTERNOON"
    if value in {"NIGHT", "NOITE"}:
        return "NIGHT"
    return "ALL"


def period_matches(time_str: str, period: Optional[str]) -> bool:
    period = normalize_period(period)
    if period == "ALL":
        return True
    try:
        hour = parse_hhmm(time_str).hour
    except ValueError:
        return False
    if period == "MORNING":
        return hour < 12
    if period == "AFTERNOON":
        return 12 <= hour < 18
    return hour >= 18


@dataclass
class SlotSearch:
    """Filters the captain's search screen applies to open slots."""

    search: Optional[str] = None
    category: Optional[str] = None
    period: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius_km: float = DEFAULT_RADIUS_KM
    exclude_owner_id: Optional[str] = None

    @property
    def has_location(self) -> bool:
        return self.lat is not None and self.lng is not None


def slot_matches(slot: models.MatchSlot, field: Optional[models.Field], criteria: SlotSearch) -> bool:
    if field is None:
        return False
    if str(slot.status or "") != models.SlotStatus.available.value:
        return False

    term = (criteria.search or "").strip().lower()
    if term and term not in (field.name or "").lower():
        return False

    if criteria.exclude_owner_id and field.owner_id == criteria.exclude_owner_id:
        return False

    if criteria.has_location and field.latitude is not None and field.longitude is not None:
        dist = haversine_km(criteria.lat, criteria.lng, field.latitude, field.longitude)
        if dist > criteria.radius_km:
            return False

    if criteria.category and not allows_category(slot.allowed_categories, criteria.category):
        return False

    return period_matches(slot.time, criteria.period)


def filter_slots(
    slots: Iterable[models.MatchSlot],
    fields: Iterable[models.Field],
    criteria: SlotSearch,
) -> List[models.MatchSlot]:
    by_id: Dict[str, models.Field] = {f.id: f for f in fields}
    return [s for s in slots if slot_matches(s, by_id.get(s.field_id), criteria)]


def sort_key(slot: models.MatchSlot):
    return (slot.date, slot.time or "")

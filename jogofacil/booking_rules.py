from __future__ import annotations

from datetime import date, time as Time, timedelta
from typing import Iterable, List, Optional

from fastapi import HTTPException

from jogofacil import models

RECURRING_EXTRA_OCCURRENCES = 3
RECURRING_INTERVAL_DAYS = 7

BOOKER_FIELDS = (
    "booked_by_team_name",
    "booked_by_user_id",
    "booked_by_phone",
    "booked_by_category",
    "opponent_team_name",
    "opponent_team_phone",
)


def parse_hhmm(value: str) -> Time:
    raw = (value or "").strip()
    parts = raw.split(":")
    if len(parts) < 2:
        raise ValueError("invalid time")
    hh = int(parts[0])
    mm = int(parts[1])
    if hh < 0 or hh > 23 or mm < 0 or mm > 59:
        raise ValueError("invalid time")
    return Time(hour=hh, minute=mm)


def normalize_categories(categories: Optional[Iterable[str]]) -> List[str]:
    cleaned: List[str] = []
    for c in categories or []:
        c = str(c or "").strip()
        if c and c not in cleaned:
            cleaned.append(c)
    return cleaned or [models.OPEN_CATEGORY]


def allows_category(allowed: Optional[Iterable[str]], category: Optional[str]) -> bool:
    allowed = list(allowed or [])
    if models.OPEN_CATEGORY in allowed:
        return True
    return bool(category) and category in allowed


def eligible_teams(slot: models.MatchSlot, teams: Iterable[models.SubTeam]) -> list:
    """Teams of a captain that may take the slot given its allowed categories."""
    allowed = list(slot.allowed_categories or [])
    if models.OPEN_CATEGORY in allowed:
        return list(teams)
    return [t for t in teams if t.category in allowed]


def recurring_dates(
    start: date,
    occurrences: int = RECURRING_EXTRA_OCCURRENCES,
    interval_days: int = RECURRING_INTERVAL_DAYS,
) -> List[date]:
    """The base date followed by `occurrences` more, `interval_days` apart."""
    return [start + timedelta(days=i * interval_days) for i in range(occurrences + 1)]


def _status(slot: models.MatchSlot) -> str:
    raw = getattr(slot, "status", None)
    return str(getattr(raw, "value", raw) or models.SlotStatus.available.value)


def ensure_can_book(slot: models.MatchSlot, user: models.User, team: Optional[models.SubTeam], field: Optional[models.Field]) -> None:
    if _status(slot) != models.SlotStatus.available.value:
        raise HTTPException(status_code=409, detail="Horário não está mais disponível")
    if field is not None and field.owner_id == user.id:
        raise HTTPException(status_code=400, detail="Você não pode agendar no seu próprio campo")
    if team is None:
        raise HTTPException(status_code=400, detail="Time não encontrado no seu perfil")
    if not eligible_teams(slot, [team]):
        allowed = ", ".join(slot.allowed_categories or [])
        raise HTTPException(
            status_code=400,
            detail=f"Seu time não está nas categorias permitidas para este jogo ({allowed})",
        )


def ensure_opponent_details(slot: models.MatchSlot, name: Optional[str], phone: Optional[str]) -> None:
    if slot.match_type != models.MatchType.aluguel.value:
        return
    if not (name or "").strip() or not (phone or "").strip():
        raise HTTPException(status_code=400, detail="Informe nome e WhatsApp do adversário para aluguel")


def ensure_can_confirm(slot: models.MatchSlot) -> None:
    if _status(slot) != models.SlotStatus.pending_verification.value:
        raise HTTPException(status_code=409, detail="Apenas agendamentos aguardando pagamento podem ser confirmados")


def ensure_can_reject(slot: models.MatchSlot) -> None:
    if _status(slot) == models.SlotStatus.available.value:
        raise HTTPException(status_code=409, detail="Horário não possui agendamento")


def apply_booking(
    slot: models.MatchSlot,
    user: models.User,
    team: models.SubTeam,
    opponent_name: Optional[str] = None,
    opponent_phone: Optional[str] = None,
) -> None:
    slot.is_booked = True
    slot.status = models.SlotStatus.pending_verification.value
    slot.booked_by_team_name = team.name
    slot.booked_by_category = team.category
    slot.booked_by_user_id = user.id
    slot.booked_by_phone = user.phone_number
    if slot.match_type == models.MatchType.aluguel.value:
        slot.opponent_team_name = (opponent_name or "").strip() or None
        slot.opponent_team_phone = (opponent_phone or "").strip() or None


def clear_booking(slot: models.MatchSlot) -> None:
    slot.status = models.SlotStatus.available.value
    slot.is_booked = False
    for attr in BOOKER_FIELDS:
        setattr(slot, attr, None)

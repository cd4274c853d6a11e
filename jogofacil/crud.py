# jogofacil/crud.py
from __future__ import annotations

from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from jogofacil import booking_rules, models, plans, schemas
from jogofacil.auth import ensure_field_manager, get_password_hash, verify_password
from jogofacil.integrations import booking_request_message, whatsapp_link
from jogofacil.search import SlotSearch, filter_slots, sort_key


def _normalize_email(email: str) -> str:
    return str(email or "").strip().lower()


def _enum_value(value):
    return getattr(value, "value", value)


# ------------------------------------------------------------------
# USERS
# ------------------------------------------------------------------

def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return (
        db.query(models.User)
        .options(selectinload(models.User.sub_teams))
        .filter(func.lower(models.User.email) == _normalize_email(email))
        .first()
    )


def get_user_or_404(db: Session, user_id: str) -> models.User:
    user = (
        db.query(models.User)
        .options(selectinload(models.User.sub_teams))
        .filter(models.User.id == user_id)
        .first()
    )
    if not user:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    return user


def create_user(db: Session, data: schemas.UserRegister) -> models.User:
    """
    Register a user together with their sub-teams and, for field owners,
    their field. Everything is written in a single transaction.
    """
    email = _normalize_email(data.email)
    if get_user_by_email(db, email):
        raise HTTPException(status_code=400, detail="Email já cadastrado")

    if data.role == models.UserRole.admin:
        raise HTTPException(status_code=400, detail="Perfil inválido para cadastro")

    if data.role == models.UserRole.field_owner and data.field_data is None:
        raise HTTPException(status_code=400, detail="Dados do campo são obrigatórios para donos de campo")

    latitude = data.latitude if data.latitude is not None else models.DEFAULT_LATITUDE
    longitude = data.longitude if data.longitude is not None else models.DEFAULT_LONGITUDE

    try:
        user = models.User(
            email=email,
            password=get_password_hash(data.password),
            name=data.name.strip(),
            role=data.role,
            phone_number=(data.phone_number or "").strip() or None,
            subscription=data.subscription or plans.initial_plan_for(data.role),
            subscription_expiry=data.subscription_expiry,
            latitude=float(latitude),
            longitude=float(longitude),
        )
        user.sub_teams = [
            models.SubTeam(name=t.name, category=t.category, logo_url=t.logo_url)
            for t in data.sub_teams
        ]
        db.add(user)
        db.flush()

        if data.role == models.UserRole.field_owner and data.field_data is not None:
            fd = data.field_data
            db.add(
                models.Field(
                    owner_id=user.id,
                    name=fd.name.strip(),
                    location=fd.location,
                    hourly_rate=float(fd.hourly_rate),
                    cancellation_fee_percent=float(fd.cancellation_fee_percent),
                    pix_key=fd.pix_config.key,
                    pix_name=fd.pix_config.name,
                    image_url=fd.image_url or models.DEFAULT_FIELD_IMAGE,
                    contact_phone=fd.contact_phone or user.phone_number,
                    latitude=user.latitude,
                    longitude=user.longitude,
                )
            )

        db.commit()
    except IntegrityError:
        # Lost a race with another registration for the same email.
        db.rollback()
        raise HTTPException(status_code=400, detail="Email já cadastrado")
    except Exception:
        db.rollback()
        raise

    print(f"[AUTH] Registered {email} as {_enum_value(user.role)}")
    return get_user_or_404(db, user.id)


def authenticate_user(db: Session, email: str, password: str) -> models.User:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password):
        raise HTTPException(status_code=401, detail="Credenciais inválidas")
    return user


def update_user(db: Session, user_id: str, data: schemas.UserUpdate) -> models.User:
    user = get_user_or_404(db, user_id)
    payload = data.model_dump(exclude_unset=True)

    if "name" in payload and (payload["name"] or "").strip():
        user.name = payload["name"].strip()
    if "phone_number" in payload:
        user.phone_number = (payload["phone_number"] or "").strip() or None
    if payload.get("subscription") is not None:
        user.subscription = payload["subscription"]

    # Sub-teams are replaced wholesale, mirroring the profile editor.
    if data.sub_teams is not None:
        user.sub_teams = [
            models.SubTeam(name=t.name, category=t.category, logo_url=t.logo_url)
            for t in data.sub_teams
        ]

    db.commit()
    db.refresh(user)
    return user


def subscribe(db: Session, user_id: str, plan: models.SubscriptionPlan) -> models.User:
    user = get_user_or_404(db, user_id)
    user.subscription = plan
    user.subscription_expiry = plans.expiry_for(plan)
    db.commit()
    db.refresh(user)
    print(f"[SUBSCRIPTION] {user.email} -> {_enum_value(plan)} (expires {user.subscription_expiry})")
    return user


def list_users(db: Session) -> List[models.User]:
    return db.query(models.User).options(selectinload(models.User.sub_teams)).order_by(models.User.name).all()


# ------------------------------------------------------------------
# FIELDS
# ------------------------------------------------------------------

def field_payload(f: models.Field) -> dict:
    # pixKey/pixName are flattened columns; the API nests them.
    return {
        "id": f.id,
        "owner_id": f.owner_id,
        "name": f.name or "",
        "location": f.location,
        "hourly_rate": float(f.hourly_rate or 0.0),
        "cancellation_fee_percent": float(f.cancellation_fee_percent or 0.0),
        "pix_config": {"key": f.pix_key or "", "name": f.pix_name or ""},
        "image_url": f.image_url,
        "contact_phone": f.contact_phone,
        "latitude": float(f.latitude if f.latitude is not None else models.DEFAULT_LATITUDE),
        "longitude": float(f.longitude if f.longitude is not None else models.DEFAULT_LONGITUDE),
    }


def list_fields(db: Session) -> List[models.Field]:
    return db.query(models.Field).order_by(models.Field.name).all()


def get_field_or_404(db: Session, field_id: str) -> models.Field:
    field = db.query(models.Field).filter(models.Field.id == field_id).first()
    if not field:
        raise HTTPException(status_code=404, detail="Campo não encontrado")
    return field


def update_field(db: Session, field: models.Field, data: schemas.FieldUpdate) -> models.Field:
    payload = data.model_dump(exclude_unset=True)
    pix = payload.pop("pix_config", None)
    if pix is not None:
        field.pix_key = pix.get("key") or None
        field.pix_name = pix.get("name") or None
    for key, value in payload.items():
        if key == "name" and not (value or "").strip():
            continue
        setattr(field, key, value)
    db.commit()
    db.refresh(field)
    return field


# ------------------------------------------------------------------
# SLOTS
# ------------------------------------------------------------------

def list_slots(db: Session, criteria: Optional[SlotSearch] = None, status: Optional[str] = None, field_id: Optional[str] = None) -> List[models.MatchSlot]:
    q = db.query(models.MatchSlot)
    if status:
        q = q.filter(models.MatchSlot.status == status)
    if field_id:
        q = q.filter(models.MatchSlot.field_id == field_id)
    slots = sorted(q.all(), key=sort_key)
    if criteria is None:
        return slots
    return filter_slots(slots, list_fields(db), criteria)


def list_user_bookings(db: Session, user_id: str) -> List[models.MatchSlot]:
    slots = db.query(models.MatchSlot).filter(models.MatchSlot.booked_by_user_id == user_id).all()
    return sorted(slots, key=sort_key)


def get_slot_or_404(db: Session, slot_id: str) -> models.MatchSlot:
    slot = db.query(models.MatchSlot).filter(models.MatchSlot.id == slot_id).first()
    if not slot:
        raise HTTPException(status_code=404, detail="Horário não encontrado")
    return slot


def _expand_slot(item: schemas.SlotCreate, field: models.Field) -> List[models.MatchSlot]:
    dates = booking_rules.recurring_dates(item.date) if item.recurring else [item.date]
    price = item.price if item.price is not None else float(field.hourly_rate or 0.0)
    local_team = (item.local_team_name or "").strip() or None
    return [
        models.MatchSlot(
            field_id=field.id,
            date=d,
            time=item.time,
            duration_minutes=item.duration_minutes,
            match_type=_enum_value(item.match_type),
            is_booked=bool(item.is_booked),
            has_local_team=bool(item.has_local_team),
            local_team_name=local_team if item.has_local_team else None,
            allowed_categories=booking_rules.normalize_categories(item.allowed_categories),
            status=_enum_value(item.status),
            price=float(price),
        )
        for d in dates
    ]


def create_slots(db: Session, items: List[schemas.SlotCreate], current_user: models.User) -> List[models.MatchSlot]:
    """Create one or many slots (recurring ones expand weekly) and return every slot."""
    if not items:
        raise HTTPException(status_code=400, detail="Nenhum horário informado")

    fields = {}
    new_rows: List[models.MatchSlot] = []
    for item in items:
        field = fields.get(item.field_id)
        if field is None:
            field = get_field_or_404(db, item.field_id)
            ensure_field_manager(current_user, field)
            fields[item.field_id] = field
        new_rows.extend(_expand_slot(item, field))

    db.add_all(new_rows)
    db.commit()
    print(f"[SLOTS] Created {len(new_rows)} slot(s) on {len(fields)} field(s)")
    return list_slots(db)


def update_slot(db: Session, slot: models.MatchSlot, data: schemas.SlotUpdate) -> models.MatchSlot:
    payload = data.model_dump(exclude_unset=True)
    for key, value in payload.items():
        if key == "allowed_categories":
            value = booking_rules.normalize_categories(value)
        setattr(slot, key, _enum_value(value))
    db.commit()
    db.refresh(slot)
    return slot


def book_slot(db: Session, slot_id: str, req: schemas.BookRequest, current_user: models.User):
    slot = get_slot_or_404(db, slot_id)
    field = get_field_or_404(db, slot.field_id)
    team = next((t for t in current_user.sub_teams if t.id == req.sub_team_id), None)

    booking_rules.ensure_can_book(slot, current_user, team, field)
    booking_rules.ensure_opponent_details(slot, req.opponent_team_name, req.opponent_team_phone)
    booking_rules.apply_booking(slot, current_user, team, req.opponent_team_name, req.opponent_team_phone)

    db.commit()
    db.refresh(slot)
    print(f"[SLOTS] {team.name} requested {field.name} on {slot.date} {slot.time}")

    message = booking_request_message(team.name, slot.match_type, slot.date, slot.time, slot.opponent_team_name)
    return slot, whatsapp_link(field.contact_phone, message)


def confirm_booking(db: Session, slot: models.MatchSlot) -> models.MatchSlot:
    booking_rules.ensure_can_confirm(slot)
    slot.status = models.SlotStatus.confirmed.value
    db.commit()
    db.refresh(slot)
    print(f"[SLOTS] Confirmed {slot.id} for {slot.booked_by_team_name}")
    return slot


def reject_booking(db: Session, slot: models.MatchSlot) -> models.MatchSlot:
    booking_rules.ensure_can_reject(slot)
    previous = slot.booked_by_team_name
    booking_rules.clear_booking(slot)
    db.commit()
    db.refresh(slot)
    print(f"[SLOTS] Rejected booking {slot.id} from {previous}")
    return slot

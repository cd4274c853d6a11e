# jogofacil/routers/slots.py
from __future__ import annotations

from typing import List, Optional, Union

from fastapi import APIRouter, Body, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jogofacil import crud, models, schemas
from jogofacil.auth import ensure_field_manager, get_current_user, get_db, is_admin
from jogofacil.integrations import owner_to_team_message, receipt_verifier, whatsapp_link
from jogofacil.search import DEFAULT_RADIUS_KM, SlotSearch

router = APIRouter(prefix="/api/slots", tags=["slots"])

MAX_RECEIPT_BYTES = 5 * 1024 * 1024


def _db_unavailable(tag: str, e: Exception) -> HTTPException:
    print(f"[SLOTS] DB error ({tag}): {str(e)[:240]}")
    return HTTPException(status_code=503, detail="Banco de dados indisponível")


@router.get("", response_model=List[schemas.SlotOut])
def list_slots(
    status: Optional[str] = Query(None),
    field_id: Optional[str] = Query(None, alias="fieldId"),
    search: Optional[str] = Query(None, description="Arena name contains"),
    category: Optional[str] = Query(None),
    period: Optional[str] = Query(None, description="ALL | MORNING | AFTERNOON | NIGHT"),
    lat: Optional[float] = Query(None),
    lng: Optional[float] = Query(None),
    radius_km: float = Query(DEFAULT_RADIUS_KM, alias="radiusKm", gt=0),
    exclude_owner_id: Optional[str] = Query(None, alias="excludeOwnerId"),
    db: Session = Depends(get_db),
):
    try:
        criteria = None
        if any(v is not None for v in (search, category, period, lat, lng, exclude_owner_id)):
            criteria = SlotSearch(
                search=search,
                category=category,
                period=period,
                lat=lat,
                lng=lng,
                radius_km=radius_km,
                exclude_owner_id=exclude_owner_id,
            )
        return crud.list_slots(db, criteria=criteria, status=status, field_id=field_id)
    except SQLAlchemyError as e:
        raise _db_unavailable("list", e)
    except Exception as e:
        print(f"[SLOTS] Unexpected error (list): {str(e)[:240]}")
        raise HTTPException(status_code=500, detail="Erro ao buscar slots")


@router.post("", response_model=List[schemas.SlotOut])
def create_slots(
    payload: Union[List[schemas.SlotCreate], schemas.SlotCreate] = Body(...),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    items = payload if isinstance(payload, list) else [payload]
    try:
        return crud.create_slots(db, items, current_user)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise _db_unavailable("create", e)
    except Exception as e:
        print(f"[SLOTS] Unexpected error (create): {str(e)[:240]}")
        raise HTTPException(status_code=500, detail="Erro ao criar slot")


@router.put("/{slot_id}", response_model=schemas.SlotOut)
def update_slot(
    slot_id: str,
    data: schemas.SlotUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    slot = crud.get_slot_or_404(db, slot_id)
    ensure_field_manager(current_user, crud.get_field_or_404(db, slot.field_id))
    try:
        return crud.update_slot(db, slot, data)
    except SQLAlchemyError as e:
        db.rollback()
        raise _db_unavailable("update", e)
    except Exception as e:
        print(f"[SLOTS] Unexpected error (update): {str(e)[:240]}")
        raise HTTPException(status_code=500, detail="Erro ao atualizar slot")


@router.post("/{slot_id}/book", response_model=schemas.BookingResponse)
def book_slot(
    slot_id: str,
    req: schemas.BookRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    try:
        slot, url = crud.book_slot(db, slot_id, req, current_user)
        return schemas.BookingResponse(slot=schemas.SlotOut.model_validate(slot), whatsapp_url=url)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise _db_unavailable("book", e)
    except Exception as e:
        print(f"[SLOTS] Unexpected error (book): {str(e)[:240]}")
        raise HTTPException(status_code=500, detail="Erro ao agendar")


@router.post("/{slot_id}/confirm", response_model=schemas.SlotOut)
def confirm_booking(
    slot_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    slot = crud.get_slot_or_404(db, slot_id)
    ensure_field_manager(current_user, crud.get_field_or_404(db, slot.field_id))
    try:
        return crud.confirm_booking(db, slot)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise _db_unavailable("confirm", e)


@router.post("/{slot_id}/reject", response_model=schemas.SlotOut)
def reject_booking(
    slot_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    slot = crud.get_slot_or_404(db, slot_id)
    ensure_field_manager(current_user, crud.get_field_or_404(db, slot.field_id))
    try:
        return crud.reject_booking(db, slot)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise _db_unavailable("reject", e)


@router.get("/{slot_id}/contact-booker")
def contact_booker(
    slot_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """WhatsApp link from the field owner to the team that requested the slot."""
    slot = crud.get_slot_or_404(db, slot_id)
    field = crud.get_field_or_404(db, slot.field_id)
    ensure_field_manager(current_user, field)
    if not slot.booked_by_phone:
        raise HTTPException(status_code=404, detail="Horário sem contato do time")
    message = owner_to_team_message(slot.booked_by_team_name or "", field.name, slot.date, slot.time)
    return {"whatsappUrl": whatsapp_link(slot.booked_by_phone, message)}


@router.post("/{slot_id}/verify-receipt", response_model=schemas.VerificationResult)
def verify_receipt(
    slot_id: str,
    receipt: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    slot = crud.get_slot_or_404(db, slot_id)
    field = crud.get_field_or_404(db, slot.field_id)
    if slot.booked_by_user_id != current_user.id and field.owner_id != current_user.id and not is_admin(current_user):
        raise HTTPException(status_code=403, detail="Sem permissão para este agendamento")

    content_type = (receipt.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Envie uma imagem do comprovante")

    image = receipt.file.read(MAX_RECEIPT_BYTES + 1)
    if len(image) > MAX_RECEIPT_BYTES:
        raise HTTPException(status_code=400, detail="A imagem deve ter no máximo 5MB")

    return receipt_verifier.verify_pix_receipt(
        image=image,
        mime_type=content_type,
        expected_amount=float(slot.price or 0.0),
        expected_receiver=field.pix_name or field.pix_key or field.name,
    )

# jogofacil/routers/fields.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jogofacil import crud, models, schemas
from jogofacil.auth import ensure_field_manager, get_current_user, get_db
from jogofacil.integrations import field_enquiry_message, maps_link, whatsapp_link

router = APIRouter(prefix="/api/fields", tags=["fields"])


class FieldContact(BaseModel):
    whatsapp_url: Optional[str] = None
    maps_url: Optional[str] = None

    model_config = schemas.CAMEL


@router.get("", response_model=List[schemas.FieldOut])
def list_fields(db: Session = Depends(get_db)):
    try:
        return [crud.field_payload(f) for f in crud.list_fields(db)]
    except SQLAlchemyError as e:
        print(f"[FIELDS] DB error: {str(e)[:240]}")
        raise HTTPException(status_code=503, detail="Banco de dados indisponível")
    except Exception as e:
        print(f"[FIELDS] Unexpected error: {str(e)[:240]}")
        raise HTTPException(status_code=500, detail="Erro ao buscar campos")


@router.get("/{field_id}", response_model=schemas.FieldOut)
def get_field(field_id: str, db: Session = Depends(get_db)):
    return crud.field_payload(crud.get_field_or_404(db, field_id))


@router.put("/{field_id}", response_model=schemas.FieldOut)
def update_field(
    field_id: str,
    data: schemas.FieldUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    field = crud.get_field_or_404(db, field_id)
    ensure_field_manager(current_user, field)
    try:
        return crud.field_payload(crud.update_field(db, field, data))
    except SQLAlchemyError as e:
        db.rollback()
        print(f"[FIELDS] DB error (update): {str(e)[:240]}")
        raise HTTPException(status_code=503, detail="Banco de dados indisponível")


@router.get("/{field_id}/slots", response_model=List[schemas.SlotOut])
def field_slots(field_id: str, db: Session = Depends(get_db)):
    """Owner dashboard: every slot of the field in date/time order."""
    crud.get_field_or_404(db, field_id)
    return crud.list_slots(db, field_id=field_id)


@router.get("/{field_id}/contact", response_model=FieldContact)
def field_contact(field_id: str, db: Session = Depends(get_db)):
    field = crud.get_field_or_404(db, field_id)
    return FieldContact(
        whatsapp_url=whatsapp_link(field.contact_phone, field_enquiry_message(field.name)),
        maps_url=maps_link(field.location),
    )

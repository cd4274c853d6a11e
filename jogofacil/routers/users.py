# jogofacil/routers/users.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jogofacil import crud, models, schemas
from jogofacil.auth import ensure_self_or_admin, get_current_user, get_db, require_admin

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=List[schemas.UserOut])
def list_users(db: Session = Depends(get_db), _=Depends(require_admin)):
    return crud.list_users(db)


@router.get("/me", response_model=schemas.UserOut)
def get_current_user_info(current_user: models.User = Depends(get_current_user)):
    """Get current logged in user info"""
    return current_user


@router.put("/{user_id}", response_model=schemas.UserOut)
def update_user(
    user_id: str,
    data: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    ensure_self_or_admin(current_user, user_id)
    try:
        return crud.update_user(db, user_id, data)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        print(f"[USERS] DB error (update): {str(e)[:240]}")
        raise HTTPException(status_code=503, detail="Banco de dados indisponível")
    except Exception as e:
        print(f"[USERS] Unexpected error (update): {str(e)[:240]}")
        raise HTTPException(status_code=500, detail="Erro ao atualizar usuário")


@router.get("/{user_id}/bookings", response_model=List[schemas.SlotOut])
def my_bookings(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    ensure_self_or_admin(current_user, user_id)
    return crud.list_user_bookings(db, user_id)


@router.post("/{user_id}/subscribe", response_model=schemas.UserOut)
def subscribe(
    user_id: str,
    req: schemas.SubscribeRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    ensure_self_or_admin(current_user, user_id)
    try:
        return crud.subscribe(db, user_id, req.plan)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        db.rollback()
        print(f"[SUBSCRIPTION] DB error: {str(e)[:240]}")
        raise HTTPException(status_code=503, detail="Banco de dados indisponível")

# jogofacil/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jogofacil import crud, schemas
from jogofacil.auth import get_db, token_for_user

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _auth_response(user) -> schemas.AuthResponse:
    out = schemas.UserOut.model_validate(user)
    return schemas.AuthResponse(**out.model_dump(), access_token=token_for_user(user))


@router.post("/login", response_model=schemas.AuthResponse)
def login(data: schemas.UserLogin, db: Session = Depends(get_db)):
    """
    Login user and return the profile plus a bearer token
    """
    try:
        user = crud.authenticate_user(db, email=data.email, password=data.password)
        return _auth_response(user)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        print(f"[LOGIN] Database error: {str(e)[:200]}")
        raise HTTPException(status_code=503, detail="Banco de dados indisponível")
    except Exception as e:
        print(f"[LOGIN] Unexpected error: {str(e)[:200]}")
        raise HTTPException(status_code=500, detail="Erro no servidor ao fazer login")


@router.post("/register", response_model=schemas.AuthResponse)
def register(data: schemas.UserRegister, db: Session = Depends(get_db)):
    try:
        user = crud.create_user(db, data)
        return _auth_response(user)
    except HTTPException:
        raise
    except SQLAlchemyError as e:
        print(f"[REGISTER] Database error: {str(e)[:240]}")
        raise HTTPException(status_code=503, detail="Banco de dados indisponível")
    except Exception as e:
        print(f"[REGISTER] Unexpected error: {type(e).__name__}: {str(e)[:240]}")
        raise HTTPException(status_code=500, detail=f"Erro ao cadastrar: {str(e)[:120]}")

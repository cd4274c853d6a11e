# jogofacil/main.py
import os

from fastapi import Depends, FastAPI, HTTPException, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.exceptions import ResponseValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.requests import Request

from jogofacil import models
from jogofacil.auth import get_db, get_password_hash
from jogofacil.database import DB_INFO, DB_SOURCE, Base, SessionLocal, engine
from jogofacil.migrations import run_auto_migrations
from jogofacil.routers import auth as auth_routes
from jogofacil.routers import fields, slots, subscriptions, users

FRONTEND_DIR = os.getenv("FRONTEND_DIR", "dist")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()] or ["*"]

print("--> [SERVER] Iniciando Jogo Fácil...")
app = FastAPI(title="Jogo Fácil")


# -----------------------------------------
# Errors always leave as JSON {"detail": ...}
# -----------------------------------------
def _json_error(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    print(f"[DB] {request.method} {request.url.path}: {str(exc)[:240]}")
    return _json_error(503, "Banco de dados indisponível")


@app.exception_handler(ResponseValidationError)
async def response_shape_error_handler(request: Request, exc: ResponseValidationError):
    print(f"[API] Invalid response for {request.url.path}: {str(exc)[:240]}")
    return _json_error(500, "Erro interno do servidor")


@app.exception_handler(Exception)
async def fallback_error_handler(request: Request, exc: Exception):
    if isinstance(exc, HTTPException):
        return await http_exception_handler(request, exc)
    print(f"[UNHANDLED] {request.url.path}: {type(exc).__name__}: {str(exc)[:240]}")
    return _json_error(500, "Erro interno do servidor")


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)


@app.get("/favicon.ico", include_in_schema=False)
def favicon():
    return Response(status_code=204)


@app.get("/health")
def health(db: Session = Depends(get_db)):
    info = {"db_source": DB_SOURCE, "db_driver": DB_INFO.get("driver")}
    try:
        db.execute(text("select 1"))
    except SQLAlchemyError as e:
        print(f"[HEALTH] Database error: {str(e)[:200]}")
        return JSONResponse(status_code=500, content={"ok": False, "db": "error", **info})
    return {"ok": True, "db": "ok", **info}


# -----------------------------------------
# Startup data
# -----------------------------------------
def seed_demo_admin() -> None:
    """
    Create an admin for demo hosts. Off unless DEMO_SEED_ADMIN is truthy, so
    a real deployment never gets the default credentials.
    """
    if str(os.getenv("DEMO_SEED_ADMIN", "")).strip().lower() not in {"1", "true", "yes"}:
        return

    email = (os.getenv("DEMO_ADMIN_EMAIL") or "admin@jogofacil.com").strip().lower()
    password = os.getenv("DEMO_ADMIN_PASSWORD") or "123"
    name = (os.getenv("DEMO_ADMIN_NAME") or "Admin").strip() or "Admin"
    if "@" not in email:
        print("[DEMO_ADMIN] Skipped: DEMO_ADMIN_EMAIL is not an email address.")
        return

    db = SessionLocal()
    try:
        exists = db.query(models.User.id).filter(func.lower(models.User.email) == email).first()
        if exists:
            return
        db.add(
            models.User(
                name=name,
                email=email,
                password=get_password_hash(password),
                role=models.UserRole.admin,
                subscription=models.SubscriptionPlan.free,
            )
        )
        db.commit()
        print(f"[DEMO_ADMIN] Created {email} (db_source={DB_SOURCE})")
    except SQLAlchemyError as e:
        db.rollback()
        print(f"[DEMO_ADMIN] Seed failed: {str(e)[:160]}")
    finally:
        db.close()


def init_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        run_auto_migrations(engine)
    except SQLAlchemyError as e:
        print(f"[DB] Warning: could not prepare schema: {str(e)[:200]}")
        return
    print("[DB] Schema ready")
    seed_demo_admin()


init_database()

for module in (auth_routes, users, subscriptions, fields, slots):
    app.include_router(module.router)


# -----------------------------------------
# Built SPA (optional)
# -----------------------------------------
def mount_frontend(directory: str) -> None:
    root = os.path.realpath(directory)
    index_html = os.path.join(root, "index.html")
    assets = os.path.join(root, "assets")
    if os.path.isdir(assets):
        app.mount("/assets", StaticFiles(directory=assets), name="assets")

    @app.get("/{full_path:path}", include_in_schema=False)
    def spa_fallback(full_path: str):
        if full_path.startswith("api/"):
            raise HTTPException(status_code=404, detail="Rota não encontrada")
        candidate = os.path.realpath(os.path.join(root, full_path))
        # Only files inside the build directory; everything else is a client route.
        if full_path and candidate.startswith(root + os.sep) and os.path.isfile(candidate):
            return FileResponse(candidate)
        return FileResponse(index_html)

    print(f"[SERVER] Serving SPA from {directory}")


if os.path.isdir(FRONTEND_DIR):
    mount_frontend(FRONTEND_DIR)

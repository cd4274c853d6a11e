#!/usr/bin/env python3
"""
Set a Jogo Fácil user's password in whatever database the app would connect to.

  python reset_user_password.py capitao@time.com
  python reset_user_password.py admin@jogofacil.com --password "NovaSenha123!" --role ADMIN
  python reset_user_password.py dono@arena.com --create --role FIELD_OWNER --name "Arena Central"
"""

from __future__ import annotations

import argparse
import getpass
import sys
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from jogofacil import models
from jogofacil.auth import get_password_hash
from jogofacil.database import DB_INFO, DB_SOURCE, Base, SessionLocal, engine
from jogofacil.plans import initial_plan_for

EXIT_OK, EXIT_NOT_FOUND, EXIT_USAGE, EXIT_DB = 0, 1, 2, 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Set a user's password in the active Jogo Fácil database.")
    parser.add_argument("email")
    parser.add_argument("--password", help="Prompted for when omitted")
    parser.add_argument("--create", action="store_true", help="Create the account when it does not exist")
    parser.add_argument("--name", help="Display name for --create (defaults to the email's local part)")
    parser.add_argument("--role", choices=[r.value for r in models.UserRole])
    return parser


def prompt_password() -> Optional[str]:
    first = getpass.getpass("New password: ")
    if first != getpass.getpass("Confirm password: "):
        return None
    return first


def new_user(email: str, password: str, name: Optional[str], role: Optional[str]) -> models.User:
    user_role = models.UserRole(role) if role else models.UserRole.team_captain
    return models.User(
        name=(name or email.split("@", 1)[0]).strip() or "Usuário",
        email=email,
        password=get_password_hash(password),
        role=user_role,
        subscription=initial_plan_for(user_role),
    )


def main(argv: list[str]) -> int:
    args = build_parser().parse_args(argv)
    email = (args.email or "").strip().lower()
    if "@" not in email:
        print("ERROR: Please provide a valid email address.")
        return EXIT_USAGE

    password = args.password or prompt_password()
    if not password:
        print("ERROR: Passwords do not match.")
        return EXIT_USAGE

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        user = db.query(models.User).filter(func.lower(models.User.email) == email).first()
        if user is None and not args.create:
            print(f"ERROR: No user '{email}'. Re-run with --create to add it.")
            return EXIT_NOT_FOUND

        if user is None:
            db.add(new_user(email, password, args.name, args.role))
            action = "Created"
        else:
            user.password = get_password_hash(password)
            if args.role:
                user.role = models.UserRole(args.role)
            action = "Updated"

        db.commit()
        print(f"OK: {action} {email} (db source={DB_SOURCE}, driver={DB_INFO.get('driver')})")
        return EXIT_OK
    except SQLAlchemyError as e:
        db.rollback()
        print(f"ERROR: Database error: {str(e)[:240]}")
        return EXIT_DB
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

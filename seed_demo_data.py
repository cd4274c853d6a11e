#!/usr/bin/env python3
"""
Populate a demo arena with a week of open slots, plus a captain to book them.

  python seed_demo_data.py
  python seed_demo_data.py --days 14 --password demo123
"""
from __future__ import annotations

import argparse
import sys
from datetime import date, timedelta

from sqlalchemy import func

from jogofacil import models
from jogofacil.auth import get_password_hash
from jogofacil.database import Base, SessionLocal, engine

OWNER_EMAIL = "dono@arena-demo.com"
CAPTAIN_EMAIL = "capitao@time-demo.com"
SLOT_TIMES = ["08:00", "10:00", "14:00", "19:00", "21:00"]


def _get_or_create_user(db, email: str, **kwargs) -> models.User:
    user = db.query(models.User).filter(func.lower(models.User.email) == email).first()
    if user:
        print(f"Already exists: {email}")
        return user
    user = models.User(email=email, **kwargs)
    db.add(user)
    db.flush()
    print(f"Added user: {email}")
    return user


def seed(days: int, password: str) -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        owner = _get_or_create_user(
            db,
            OWNER_EMAIL,
            name="Arena Demo",
            password=get_password_hash(password),
            role=models.UserRole.field_owner,
            subscription=models.SubscriptionPlan.free,
            phone_number="(11) 99999-0001",
        )
        captain = _get_or_create_user(
            db,
            CAPTAIN_EMAIL,
            name="Capitão Demo",
            password=get_password_hash(password),
            role=models.UserRole.team_captain,
            subscription=models.SubscriptionPlan.none,
            phone_number="(11) 99999-0002",
        )
        if not captain.sub_teams:
            captain.sub_teams = [
                models.SubTeam(name="Demo FC", category="Principal"),
                models.SubTeam(name="Demo FC Sub-20", category="Sub-20"),
            ]

        field = db.query(models.Field).filter(models.Field.owner_id == owner.id).first()
        if not field:
            field = models.Field(
                owner_id=owner.id,
                name="Arena Demo Society",
                location="Av. Paulista, 1000 - São Paulo",
                hourly_rate=150.0,
                cancellation_fee_percent=20.0,
                pix_key="dono@arena-demo.com",
                pix_name="Arena Demo LTDA",
                contact_phone=owner.phone_number,
            )
            db.add(field)
            db.flush()
            print(f"Added field: {field.name}")

        today = date.today()
        created = 0
        for offset in range(days):
            day = today + timedelta(days=offset)
            for i, hhmm in enumerate(SLOT_TIMES):
                existing = db.query(models.MatchSlot).filter(
                    models.MatchSlot.field_id == field.id,
                    models.MatchSlot.date == day,
                    models.MatchSlot.time == hhmm,
                ).first()
                if existing:
                    continue
                db.add(
                    models.MatchSlot(
                        field_id=field.id,
                        date=day,
                        time=hhmm,
                        match_type=models.MatchType.aluguel.value if i % 2 else models.MatchType.amistoso.value,
                        has_local_team=not i % 2,
                        local_team_name="Arena FC" if not i % 2 else None,
                        allowed_categories=["Livre"] if i % 2 else ["Principal", "Veteranos"],
                        price=field.hourly_rate,
                    )
                )
                created += 1

        db.commit()
        print(f"\n✓ {created} slots populated for {field.name}")
    except Exception as e:
        print(f"✗ Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description="Seed demo data for Jogo Fácil.")
    parser.add_argument("--days", type=int, default=7, help="How many days of slots to create")
    parser.add_argument("--password", default="demo123", help="Password for the demo accounts")
    args = parser.parse_args(argv)
    seed(max(1, args.days), args.password)
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

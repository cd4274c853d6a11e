from __future__ import annotations

import os
from sqlalchemy import text


def auto_migrate_enabled() -> bool:
    return str(os.getenv("AUTO_MIGRATE", "")).strip() in {"1", "true", "TRUE", "yes", "YES"}


def migration_statements() -> list[str]:
    return [
        # ----------------------------
        # Users additions
        # ----------------------------
        "ALTER TABLE users ADD COLUMN IF NOT EXISTS phone_number text NULL;",
        "ALTER TABLE users ADD COLUMN IF NOT EXISTS subscription_expiry timestamp NULL;",
        "ALTER TABLE users ADD COLUMN IF NOT EXISTS latitude double precision NULL;",
        "ALTER TABLE users ADD COLUMN IF NOT EXISTS longitude double precision NULL;",
        "ALTER TABLE users ADD COLUMN IF NOT EXISTS created_at timestamp NULL;",
        # ----------------------------
        # Sub-teams additions
        # ----------------------------
        "ALTER TABLE sub_teams ADD COLUMN IF NOT EXISTS logo_url text NULL;",
        # ----------------------------
        # Fields additions
        # ----------------------------
        "ALTER TABLE fields ADD COLUMN IF NOT EXISTS cancellation_fee_percent double precision NULL;",
        "ALTER TABLE fields ADD COLUMN IF NOT EXISTS contact_phone text NULL;",
        "ALTER TABLE fields ADD COLUMN IF NOT EXISTS image_url text NULL;",
        "ALTER TABLE fields ADD COLUMN IF NOT EXISTS created_at timestamp NULL;",
        # ----------------------------
        # Match slots additions (match type + rental opponent)
        # ----------------------------
        "ALTER TABLE match_slots ADD COLUMN IF NOT EXISTS duration_minutes integer NULL;",
        "ALTER TABLE match_slots ADD COLUMN IF NOT EXISTS match_type text NULL;",
        "ALTER TABLE match_slots ADD COLUMN IF NOT EXISTS opponent_team_name text NULL;",
        "ALTER TABLE match_slots ADD COLUMN IF NOT EXISTS opponent_team_phone text NULL;",
        "ALTER TABLE match_slots ADD COLUMN IF NOT EXISTS created_at timestamp NULL;",
        # ----------------------------
        # Supabase hardening (PostgREST exposure)
        # ----------------------------
        # The app talks to Postgres server-side, never through the Supabase client SDK,
        # so RLS without policies simply denies PostgREST access.
        "ALTER TABLE IF EXISTS public.users ENABLE ROW LEVEL SECURITY;",
        "ALTER TABLE IF EXISTS public.sub_teams ENABLE ROW LEVEL SECURITY;",
        "ALTER TABLE IF EXISTS public.fields ENABLE ROW LEVEL SECURITY;",
        "ALTER TABLE IF EXISTS public.match_slots ENABLE ROW LEVEL SECURITY;",
    ]


def run_auto_migrations(engine) -> bool:
    """
    Minimal, idempotent schema migrations for hosted demos.

    `create_all()` creates missing tables but never adds columns to existing
    ones. Gated behind `AUTO_MIGRATE=1` and only run on Postgres.

    Returns True when statements were executed.
    """

    if not auto_migrate_enabled():
        return False

    dialect = getattr(getattr(engine, "dialect", None), "name", "") or ""
    if dialect not in {"postgresql", "postgres"}:
        return False

    with engine.begin() as conn:
        for stmt in migration_statements():
            conn.execute(text(stmt))
    print(f"[DB] Auto-migrations applied ({len(migration_statements())} statements)")
    return True

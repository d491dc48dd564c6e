from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

from habit_engine.db import SessionLocal
from habit_engine.services.achievements import seed_catalog


def main() -> None:
    project_root = Path(__file__).resolve().parents[1]
    alembic_ini = project_root / "alembic.ini"
    if not alembic_ini.exists():
        raise RuntimeError(f"alembic.ini not found at: {alembic_ini}")

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(project_root / "alembic"))
    command.upgrade(cfg, "head")
    print("DB migrated (alembic upgrade head).")

    with SessionLocal() as db:
        created = seed_catalog(db)
    print(f"Achievements seeded: {created} new.")


if __name__ == "__main__":
    main()

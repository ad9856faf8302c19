from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect
from sqlalchemy import text as sql_text

from core.config import get_settings


def test_required_tables_present_in_migration():
    text = Path("alembic/versions/20261017_0001_training_calendar.py").read_text()
    for t in ["periods", "plans", "plan_weeks", "plan_days"]:
        assert f'"{t}"' in text
    assert "uq_plan_day_owner_date_zone" in text
    assert "uq_plan_owner_kind_zone" in text


def test_migrations_avoid_postgres_now_function_for_portability():
    migrations_dir = Path("alembic/versions")
    for migration_file in migrations_dir.glob("*.py"):
        text = migration_file.read_text(encoding="utf-8").lower()
        assert "now()" not in text, f"Non-portable now() found in {migration_file.name}"


def test_alembic_upgrade_head_succeeds_on_sqlite(tmp_path, monkeypatch):
    db_path = tmp_path / "migration_smoke.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")
    get_settings.cache_clear()

    cfg = Config("alembic.ini")
    cfg.attributes["configure_logger"] = False
    command.upgrade(cfg, "head")
    get_settings.cache_clear()

    engine = create_engine(f"sqlite:///{db_path}")
    inspector = inspect(engine)
    assert {"periods", "plans", "plan_weeks", "plan_days"} <= set(inspector.get_table_names())
    uniques = {u["name"] for u in inspector.get_unique_constraints("plan_days")}
    assert "uq_plan_day_owner_date_zone" in uniques
    assert "rolling" in {c["name"] for c in inspector.get_columns("plans")}
    with engine.connect() as conn:
        for table in ["plans", "plan_weeks", "plan_days"]:
            ddl = conn.execute(sql_text("select sql from sqlite_master where name = :name"), {"name": table}).scalar_one()
            assert "AUTOINCREMENT" in ddl
    engine.dispose()

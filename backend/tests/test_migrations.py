from pathlib import Path

from sqlalchemy import create_engine, inspect

from alembic import command
from alembic.config import Config

ALEMBIC_INI = Path(__file__).resolve().parents[1] / "alembic.ini"


def _alembic_config(database_url: str) -> Config:
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def test_alembic_upgrade_head_on_fresh_sqlite_db(tmp_path):
    database_url = f"sqlite:///{tmp_path / 'fresh.db'}"

    command.upgrade(_alembic_config(database_url), "head")

    engine = create_engine(database_url)
    try:
        inspector = inspect(engine)
        assert {"challenges", "pending_reports"}.issubset(set(inspector.get_table_names()))

        report_columns = {c["name"] for c in inspector.get_columns("pending_reports")}
        assert {"id", "data", "challenge_nonce", "committed_at"} == report_columns
    finally:
        engine.dispose()


def test_alembic_downgrade_base_drops_tables(tmp_path):
    database_url = f"sqlite:///{tmp_path / 'fresh.db'}"
    cfg = _alembic_config(database_url)

    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = create_engine(database_url)
    try:
        tables = set(inspect(engine).get_table_names())
        assert "challenges" not in tables
        assert "pending_reports" not in tables
    finally:
        engine.dispose()

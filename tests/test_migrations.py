# tests/test_migrations.py
from __future__ import annotations

import importlib.util
from pathlib import Path

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect

from tenancy.db import Base
from tenancy import models  # noqa: F401

VERSIONS = Path(__file__).resolve().parents[1] / "tenancy" / "alembic" / "versions"


def _load(name: str):
    spec = importlib.util.spec_from_file_location(f"migration_{name}", VERSIONS / f"{name}.py")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def test_initial_migration_matches_models():
    eng = create_engine("sqlite://")
    mig = _load("0001_init")
    with eng.begin() as conn:
        with Operations.context(MigrationContext.configure(conn)):
            mig.upgrade()

        insp = inspect(conn)
        for table in Base.metadata.sorted_tables:
            migrated = {c["name"] for c in insp.get_columns(table.name)}
            assert migrated == {c.name for c in table.columns}, table.name

        with Operations.context(MigrationContext.configure(conn)):
            mig.downgrade()
        assert inspect(conn).get_table_names() == []

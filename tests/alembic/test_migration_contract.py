# tests/alembic/test_migration_contract.py
"""
Static checks on the initial migration: it must create every mapped table
and put a tenant policy on every store-scoped one.
"""

import importlib.util
import re
from pathlib import Path

from storefront.db.base import Base, init_models

MIGRATION = Path(__file__).resolve().parents[2] / "alembic" / "versions" / "0001_storefront_schema.py"

# scoped by store_id but read across stores (login, license activation)
CROSS_STORE_TABLES = {"users", "licenses"}


def _load():
    spec = importlib.util.spec_from_file_location("storefront_migration_0001", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_initial_revision_is_the_root():
    mod = _load()
    assert mod.revision == "0001_storefront_schema"
    assert mod.down_revision is None


def test_every_model_table_is_created():
    init_models()
    created = set(re.findall(r'op\.create_table\(\s*"(\w+)"', MIGRATION.read_text(encoding="utf-8")))
    assert created == set(Base.metadata.tables)


def test_tenant_tables_match_the_models():
    init_models()
    scoped = {t.name for t in Base.metadata.tables.values() if "store_id" in t.c} - CROSS_STORE_TABLES
    assert set(_load().TENANT_TABLES) == scoped

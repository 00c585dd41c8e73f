"""
The Alembic baseline must produce the same tables as the ORM models.
"""
from sqlalchemy import create_engine, inspect

from socialboost.db.base import Base
from socialboost.db.migrate import run_migrations


def test_baseline_migration_creates_billing_schema(tmp_path):
    database_url = f"sqlite:///{tmp_path / 'billing.db'}"

    run_migrations(database_url)

    engine = create_engine(database_url)
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    assert set(Base.metadata.tables) <= tables

    for name, table in Base.metadata.tables.items():
        migrated = {column["name"] for column in inspector.get_columns(name)}
        assert migrated == set(table.columns.keys()), name

    campaign_fks = {fk["referred_table"] for fk in inspector.get_foreign_keys("campaigns")}
    assert campaign_fks == {"users", "subscriptions"}
    engine.dispose()

"""Alembic migrations build the same schema as the ORM models."""

from alembic import command
from sqlalchemy import create_engine, inspect

from database import Base, alembic_config


def test_upgrade_matches_models(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    command.upgrade(alembic_config(url), "head")

    engine = create_engine(url)
    try:
        inspector = inspect(engine)
        assert set(inspector.get_table_names()) - {"alembic_version"} == set(Base.metadata.tables)
        for table in Base.metadata.sorted_tables:
            migrated = {c["name"]: c for c in inspector.get_columns(table.name)}
            assert set(migrated) == set(table.columns.keys()), table.name
            for column in table.columns:
                assert migrated[column.name]["nullable"] == column.nullable, (
                    f"{table.name}.{column.name}"
                )
            indexed = {tuple(ix["column_names"]) for ix in inspector.get_indexes(table.name)}
            for column in table.columns:
                if column.index:
                    assert (column.name,) in indexed, f"{table.name}.{column.name}"
    finally:
        engine.dispose()


def test_downgrade_to_base_drops_tables(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    config = alembic_config(url)
    command.upgrade(config, "head")

    command.downgrade(config, "base")

    engine = create_engine(url)
    try:
        assert set(inspect(engine).get_table_names()) == {"alembic_version"}
    finally:
        engine.dispose()

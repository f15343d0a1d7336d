"""The shipped Alembic revisions must build the schema the models describe."""

from __future__ import annotations

import sqlalchemy as sa
from flask_migrate import downgrade, upgrade

from app import create_app
from models import db

from conftest import ROOT_DIR, _BaseTestConfig

MIGRATIONS_DIR = str(ROOT_DIR / "migrations")


def test_upgrade_and_downgrade(tmp_path):
    class MigrationConfig(_BaseTestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'visa.db'}"

    application = create_app(MigrationConfig)
    assert "migrate" in application.extensions

    with application.app_context():
        upgrade(directory=MIGRATIONS_DIR)

        inspector = sa.inspect(db.engine)
        assert set(db.metadata.tables) <= set(inspector.get_table_names())
        for name, table in db.metadata.tables.items():
            columns = {column["name"] for column in inspector.get_columns(name)}
            assert columns == set(table.columns.keys()), name
        indexes = {index["name"] for index in inspector.get_indexes("visa_requirements")}
        assert {
            "uq_visa_requirements_active_key",
            "uq_visa_requirements_active_default",
        } <= indexes

        downgrade(directory=MIGRATIONS_DIR, revision="base")
        assert set(sa.inspect(db.engine).get_table_names()) == {"alembic_version"}

        db.session.remove()
        db.engine.dispose()

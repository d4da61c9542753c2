"""Schema creation from the model metadata."""

from sqlalchemy import create_engine, inspect

from bevstock.extensions import db


def test_create_all_on_fresh_database(app):
    engine = create_engine("sqlite:///:memory:")
    db.metadata.create_all(engine)

    inspector = inspect(engine)
    assert set(inspector.get_table_names()) >= {
        "products", "stock_entries", "sales", "sale_items", "audit_logs", "notes",
    }
    index_names = {ix["name"] for ix in inspector.get_indexes("audit_logs")}
    assert "ix_audit_logs_entity" in index_names

    # a second pass is a no-op
    db.metadata.create_all(engine)
    engine.dispose()


def test_init_and_reset_commands_build_schema(app, db_session):
    runner = app.test_cli_runner()
    assert runner.invoke(args=["system", "reset-db", "--yes"]).exit_code == 0
    assert runner.invoke(args=["system", "init-db"]).exit_code == 0
    assert inspect(db.engine).has_table("audit_logs")

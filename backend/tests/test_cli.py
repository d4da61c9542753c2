"""Flask CLI commands."""

from bevstock.services.audit_service import AuditRecord, commit_with_audit


def test_stock_list(app, db_session, make_product):
    make_product(name="Cola", opening_stock=3, reorder_level=5)
    make_product(name="Water", opening_stock=30, reorder_level=5)

    runner = app.test_cli_runner()
    result = runner.invoke(args=["stock", "list"])
    assert result.exit_code == 0
    assert "Cola" in result.output and "Water" in result.output

    result = runner.invoke(args=["stock", "list", "--low-only"])
    assert "Cola" in result.output
    assert "Water" not in result.output


def test_stock_list_empty(app, db_session):
    result = app.test_cli_runner().invoke(args=["stock", "list"])
    assert "No products." in result.output


def test_audit_list(app, db_session):
    commit_with_audit(AuditRecord(entity="sale", entity_id=7, action="sale_created", details={"total_units": 2}))
    result = app.test_cli_runner().invoke(args=["audit", "list", "--entity", "sale"])
    assert result.exit_code == 0
    assert "sale:7" in result.output
    assert "sale_created" in result.output


def test_init_db(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "init-db"])
    assert result.exit_code == 0
    assert "Tables created" in result.output

"""Flask CLI bootstrap commands."""

from rdr_finance.extensions import db
from rdr_finance.models import Category, Employee, User


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0, result.output
    assert "PASS Created admin" in result.output

    result = runner.invoke(args=["system", "init"])
    assert "already exists" in result.output
    assert "Added 0 default categories" in result.output

    db.session.expire_all()
    assert db.session.query(User).filter_by(role="admin").count() == 1
    assert db.session.query(Category).count() > 0


def test_create_employee_command(app, db_session, admin):
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        "employees", "create",
        "--name", "Rina",
        "--username", "rina",
        "--password", "Rina12345",
    ])
    assert result.exit_code == 0, result.output
    assert "PASS Created employee 'Rina'" in result.output

    db.session.expire_all()
    assert db.session.query(Employee).filter_by(name="Rina").one().user.role == "employee"


def test_create_user_reports_weak_password(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "create", "--username", "ops", "--password", "weak"])
    assert "FAIL" in result.output

"""CLI command tests (flask system/users/perms/ledger groups)."""

from decimal import Decimal

from stockledger.models import IngredientMovement, User
from stockledger.services import movement_service


class TestSystemAndUsers:

    def test_init_with_users(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init", "--with-users"])
        assert result.exit_code == 0, result.output
        assert {u.username for u in db_session.query(User).all()} == {"admin", "inventory"}

        # Idempotent
        again = runner.invoke(args=["system", "init", "--with-users"])
        assert again.exit_code == 0
        assert "not created" in again.output

    def test_create_and_list_users(self, app, setup_roles):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create",
            "--username", "baker", "--email", "baker@example.com",
            "--password", "Password123!", "--role", "inventory",
        ])
        assert result.exit_code == 0, result.output

        listing = runner.invoke(args=["users", "list"])
        assert "baker" in listing.output
        assert "inventory" in listing.output

    def test_create_user_weak_password(self, app, setup_roles):
        result = app.test_cli_runner().invoke(args=[
            "users", "create",
            "--username", "baker", "--email", "baker@example.com",
            "--password", "weak", "--role", "inventory",
        ])
        assert result.exit_code == 1


class TestPerms:

    def test_check(self, app):
        runner = app.test_cli_runner()
        assert "HAS permission" in runner.invoke(args=["perms", "check", "inventory", "read"]).output
        assert "DOES NOT HAVE" in runner.invoke(args=["perms", "check", "inventory", "delete"]).output

    def test_list_for_role(self, app):
        output = app.test_cli_runner().invoke(args=["perms", "list", "--role", "inventory"]).output
        assert "create_movement" in output
        assert "delete" not in output


class TestLedgerVerify:

    def test_consistent(self, app, make_ingredient):
        ingredient = make_ingredient(stock_quantity="3")
        movement_service.create_movement(
            ingredient_id=ingredient.id, movement_type="in", quantity="2", acting_role="admin",
        ).unwrap()

        result = app.test_cli_runner().invoke(args=["ledger", "verify"])
        assert result.exit_code == 0, result.output
        assert "0 inconsistent" in result.output

    def test_drift_exits_nonzero(self, app, db_session, make_ingredient):
        ingredient = make_ingredient(stock_quantity="3")
        db_session.execute(
            IngredientMovement.__table__.insert().values(
                id="rogue", ingredient_id=ingredient.id, movement_type="out",
                quantity=Decimal("1"), created_at=ingredient.created_at,
            )
        )
        db_session.commit()

        result = app.test_cli_runner().invoke(args=["ledger", "verify", "--ingredient-id", ingredient.id])
        assert result.exit_code == 1
        assert "FAIL" in result.output

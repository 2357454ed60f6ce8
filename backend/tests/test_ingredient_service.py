"""
Ingredient repository tests.

Verifies:
- create/read/update/delete round trips with timestamps and defaults
- validation failures come back as Result failures, never exceptions
- administrative stock overrides keep the ledger equation intact
- stale expected_version is a conflict
"""

from decimal import Decimal

from stockledger.errors import ConflictError, NotFound, ValidationError
from stockledger.services import ingredient_service, movement_service


class TestCreate:

    def test_create_defaults(self, db_session):
        result = ingredient_service.create_ingredient({
            "name": "  Sugar ",
            "unit": "kg",
            "unit_cost": "1.25",
        })
        assert result.ok
        ingredient = result.value
        assert ingredient.id
        assert ingredient.name == "Sugar"
        assert ingredient.stock_quantity == 0
        assert ingredient.minimum_stock == 0
        assert ingredient.baseline_quantity == 0
        assert ingredient.unit_cost == Decimal("1.25")
        assert ingredient.created_at is not None
        assert ingredient.updated_at is not None

    def test_opening_stock_is_baseline(self, make_ingredient):
        ingredient = make_ingredient(stock_quantity="12")
        assert ingredient.stock_quantity == Decimal("12")
        assert ingredient.baseline_quantity == Decimal("12")

    def test_missing_required_fields(self, db_session):
        result = ingredient_service.create_ingredient({"name": "Salt"})
        assert not result.ok
        assert isinstance(result.error, ValidationError)
        assert "unit" in result.error.message
        assert "unit_cost" in result.error.message

    def test_unit_cost_must_be_positive(self, db_session):
        for cost in ("0", "-1"):
            result = ingredient_service.create_ingredient({"name": "Salt", "unit": "kg", "unit_cost": cost})
            assert isinstance(result.error, ValidationError)

    def test_negative_quantities_rejected(self, db_session):
        result = ingredient_service.create_ingredient({
            "name": "Salt", "unit": "kg", "unit_cost": "1", "minimum_stock": "-1",
        })
        assert isinstance(result.error, ValidationError)

        result = ingredient_service.create_ingredient({
            "name": "Salt", "unit": "kg", "unit_cost": "1", "stock_quantity": "-0.5",
        })
        assert isinstance(result.error, ValidationError)

    def test_unknown_field_rejected(self, db_session):
        result = ingredient_service.create_ingredient({
            "name": "Salt", "unit": "kg", "unit_cost": "1", "version_id": 99,
        })
        assert isinstance(result.error, ValidationError)

    def test_non_numeric_cost_rejected(self, db_session):
        for bad in ("abc", True, "NaN", ""):
            result = ingredient_service.create_ingredient({"name": "Salt", "unit": "kg", "unit_cost": bad})
            assert isinstance(result.error, ValidationError), bad

    def test_decimal_places_limited_per_column(self, db_session):
        too_fine_cost = ingredient_service.create_ingredient({"name": "Saffron", "unit": "g", "unit_cost": "0.00005"})
        assert isinstance(too_fine_cost.error, ValidationError)

        too_fine_stock = ingredient_service.create_ingredient({
            "name": "Saffron", "unit": "g", "unit_cost": "1", "stock_quantity": "0.0005",
        })
        assert isinstance(too_fine_stock.error, ValidationError)

        ingredient = ingredient_service.create_ingredient({
            "name": "Saffron", "unit": "g", "unit_cost": "0.0001", "stock_quantity": "0.001",
        }).unwrap()
        assert ingredient.unit_cost == Decimal("0.0001")
        assert ingredient.stock_quantity == Decimal("0.001")

    def test_blank_name_rejected(self, db_session):
        result = ingredient_service.create_ingredient({"name": "   ", "unit": "kg", "unit_cost": "1"})
        assert isinstance(result.error, ValidationError)


class TestRead:

    def test_get_missing(self, db_session):
        result = ingredient_service.get_ingredient("does-not-exist")
        assert isinstance(result.error, NotFound)
        assert result.error.http_status == 404

    def test_list_ordered_by_name(self, make_ingredient):
        make_ingredient(name="Yeast")
        make_ingredient(name="Butter")
        make_ingredient(name="Milk")

        names = [i.name for i in ingredient_service.list_ingredients().unwrap()]
        assert names == ["Butter", "Milk", "Yeast"]


class TestUpdate:

    def test_partial_update(self, make_ingredient):
        ingredient = make_ingredient(name="Flour")
        before = ingredient.updated_at

        result = ingredient_service.update_ingredient(ingredient.id, {"minimum_stock": "5", "name": "Rye Flour"})
        assert result.ok
        assert result.value.name == "Rye Flour"
        assert result.value.minimum_stock == Decimal("5")
        assert result.value.unit == "kg"
        assert result.value.updated_at >= before

    def test_stock_override_shifts_baseline(self, make_ingredient):
        ingredient = make_ingredient(stock_quantity="10")
        movement_service.create_movement(
            ingredient_id=ingredient.id, movement_type="in", quantity="5", acting_role="admin",
        ).unwrap()

        result = ingredient_service.update_ingredient(ingredient.id, {"stock_quantity": "3"})
        assert result.ok
        assert result.value.stock_quantity == Decimal("3")

        check = movement_service.verify_ledger(ingredient.id).unwrap()
        assert check.consistent
        assert check.baseline_quantity == Decimal("-2")

    def test_update_missing(self, db_session):
        result = ingredient_service.update_ingredient("nope", {"name": "X"})
        assert isinstance(result.error, NotFound)

    def test_update_validation(self, make_ingredient):
        ingredient = make_ingredient()
        result = ingredient_service.update_ingredient(ingredient.id, {"unit_cost": "0"})
        assert isinstance(result.error, ValidationError)

    def test_expected_version_match(self, make_ingredient):
        ingredient = make_ingredient()
        version = ingredient.version_id

        result = ingredient_service.update_ingredient(ingredient.id, {"unit": "g"}, expected_version=version)
        assert result.ok
        assert result.value.version_id == version + 1

    def test_stale_expected_version_conflicts(self, make_ingredient):
        ingredient = make_ingredient()
        stale = ingredient.version_id

        # A ledger write moves the version forward
        movement_service.create_movement(
            ingredient_id=ingredient.id, movement_type="in", quantity="1", acting_role="inventory",
        ).unwrap()

        result = ingredient_service.update_ingredient(ingredient.id, {"unit": "g"}, expected_version=stale)
        assert isinstance(result.error, ConflictError)
        assert result.error.retryable
        assert result.error.http_status == 409


class TestDelete:

    def test_delete(self, make_ingredient):
        ingredient = make_ingredient()
        assert ingredient_service.delete_ingredient(ingredient.id).ok
        assert isinstance(ingredient_service.get_ingredient(ingredient.id).error, NotFound)

    def test_delete_missing(self, db_session):
        assert isinstance(ingredient_service.delete_ingredient("nope").error, NotFound)

    def test_delete_leaves_movements(self, make_ingredient):
        ingredient = make_ingredient()
        movement = movement_service.create_movement(
            ingredient_id=ingredient.id, movement_type="in", quantity="2", acting_role="admin",
        ).unwrap()
        movement_id = movement.id

        ingredient_service.delete_ingredient(ingredient.id).unwrap()

        orphan = movement_service.get_movement(movement_id).unwrap()
        assert orphan.ingredient_id == ingredient.id

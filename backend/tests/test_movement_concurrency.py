"""
Concurrency tests for the movement ledger.

Runs real threads against a file-backed SQLite database (the in-memory
test database is a single shared connection and cannot show races).

Verifies:
- N concurrent 'out' movements with N*q <= S all succeed, final stock S - N*q
- two concurrent 'in' movements of 5 from 0 end at 10 with two records
- oversubscribed 'out' movements never drive stock below zero
"""

import threading
from decimal import Decimal

import pytest

from stockledger import create_app
from stockledger.errors import InsufficientStock
from stockledger.extensions import db
from stockledger.models import IngredientMovement
from stockledger.services import ingredient_service, movement_service


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'ledger.sqlite3'}",
        'STORE_TIMEOUT_SECONDS': 10,
        'LEDGER_RETRY_ATTEMPTS': 5,
        'LEDGER_RETRY_BACKOFF_SECONDS': 0.01,
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _seed(app, stock: str) -> str:
    with app.app_context():
        ingredient = ingredient_service.create_ingredient({
            "name": "Shared",
            "unit": "kg",
            "unit_cost": "1",
            "stock_quantity": stock,
        }).unwrap()
        return ingredient.id


def _run_concurrently(app, ingredient_id, movement_type, quantity, workers):
    """Fire `workers` create_movement calls at once; return their Results."""
    barrier = threading.Barrier(workers)
    results = []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            barrier.wait()
            result = movement_service.create_movement(
                ingredient_id=ingredient_id,
                movement_type=movement_type,
                quantity=quantity,
                acting_role="inventory",
            )
            # Touch lazy attributes while the session is still ours
            if result.ok:
                result.value.to_dict()
            db.session.remove()
        with lock:
            results.append(result)

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    assert all(not t.is_alive() for t in threads)
    return results


def _state(app, ingredient_id):
    with app.app_context():
        stock = ingredient_service.get_ingredient(ingredient_id).unwrap().stock_quantity
        count = db.session.query(IngredientMovement).filter_by(ingredient_id=ingredient_id).count()
        check = movement_service.verify_ledger(ingredient_id).unwrap()
        return stock, count, check


class TestConcurrentMovements:

    def test_no_lost_updates_on_out(self, file_app):
        ingredient_id = _seed(file_app, "20")

        results = _run_concurrently(file_app, ingredient_id, "out", "2", workers=8)

        assert [r.error for r in results if not r.ok] == []
        stock, count, check = _state(file_app, ingredient_id)
        assert stock == Decimal("4")
        assert count == 8
        assert check.consistent

    def test_two_concurrent_ins(self, file_app):
        ingredient_id = _seed(file_app, "0")

        results = _run_concurrently(file_app, ingredient_id, "in", "5", workers=2)

        assert all(r.ok for r in results)
        stock, count, check = _state(file_app, ingredient_id)
        assert stock == Decimal("10")
        assert count == 2
        assert check.consistent

    def test_oversubscribed_out_never_goes_negative(self, file_app):
        ingredient_id = _seed(file_app, "10")

        results = _run_concurrently(file_app, ingredient_id, "out", "3", workers=6)

        succeeded = [r for r in results if r.ok]
        rejected = [r for r in results if not r.ok]
        assert len(succeeded) == 3
        assert all(isinstance(r.error, InsufficientStock) for r in rejected)

        stock, count, check = _state(file_app, ingredient_id)
        assert stock == Decimal("1")
        assert count == 3
        assert check.consistent

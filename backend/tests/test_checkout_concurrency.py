# Overview: Pytest coverage for concurrent checkouts racing on the last unit of stock.

"""
Oversell race

Two threads check out the last unit of one variant at the same moment
against a file-backed SQLite database (each request gets its own session
and connection). Exactly one sale may win; the other must be a stock
conflict, and stock must never go negative.
"""

import threading

import pytest

from cubepos import create_app
from cubepos.extensions import db
from cubepos.models import InventoryLog, ProductVariant, Sale

from conftest import MutableClock, RecordingNotifier, make_tenant, make_variant


@pytest.fixture
def race_app(tmp_path):
    app = create_app(
        {
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'race.sqlite3'}",
            'SQLALCHEMY_ENGINE_OPTIONS': {
                'connect_args': {'check_same_thread': False, 'timeout': 30},
            },
            'STOCK_ALERTS_ENABLED': False,
        },
        notifier=RecordingNotifier(),
        clock=MutableClock(),
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def test_last_unit_sells_once(race_app):
    with race_app.app_context():
        tenant = make_tenant(db.session)
        variant = make_variant(db.session, tenant, stock=1)
        tenant_id, variant_id = tenant.id, variant.id

    barrier = threading.Barrier(2)
    responses = {}

    def buy(key):
        client = race_app.test_client()
        barrier.wait()
        response = client.post("/api/pos/checkout", json={
            "idempotency_key": key,
            "tenant_id": tenant_id,
            "items": [{"variant_id": variant_id, "quantity": 1, "unit_price_cents": 500}],
            "payments": [{"method": "CASH", "amount_cents": 500}],
        })
        responses[key] = (response.status_code, response.get_json())

    threads = [threading.Thread(target=buy, args=(f"race-key-{n:04d}",)) for n in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    codes = sorted(code for code, _ in responses.values())
    assert codes == [201, 409]

    conflict = next(body for code, body in responses.values() if code == 409)
    assert conflict["details"]["variant_id"] == variant_id

    with race_app.app_context():
        assert db.session.get(ProductVariant, variant_id).stock == 0
        assert db.session.query(Sale).count() == 1
        assert db.session.query(InventoryLog).count() == 1


def test_same_key_concurrently_creates_one_sale(race_app):
    with race_app.app_context():
        tenant = make_tenant(db.session)
        variant = make_variant(db.session, tenant, stock=5)
        tenant_id, variant_id = tenant.id, variant.id

    barrier = threading.Barrier(2)
    responses = []
    lock = threading.Lock()

    def buy():
        client = race_app.test_client()
        barrier.wait()
        response = client.post("/api/pos/checkout", json={
            "idempotency_key": "shared-key-0001",
            "tenant_id": tenant_id,
            "items": [{"variant_id": variant_id, "quantity": 2, "unit_price_cents": 500}],
            "payments": [{"method": "CASH", "amount_cents": 1000}],
        })
        with lock:
            responses.append((response.status_code, response.get_json()["sale"]["id"]))

    threads = [threading.Thread(target=buy) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(code for code, _ in responses) == [200, 201]
    assert len({sale_id for _, sale_id in responses}) == 1

    with race_app.app_context():
        assert db.session.get(ProductVariant, variant_id).stock == 3
        assert db.session.query(Sale).count() == 1

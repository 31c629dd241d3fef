"""
Pytest fixtures for cubepos backend tests.

Provides the in-memory test app, per-test table wipe, a recording notifier,
a settable clock and small model factories.
"""

import threading
from datetime import datetime
from decimal import Decimal

import pytest
from cubepos import create_app
from cubepos.extensions import db, get_stock_alerts
from cubepos.models import User, Tenant, Cube, Rental, Product, ProductVariant
from cubepos.models.rentals import RENTAL_ACTIVE
from cubepos.services.notifier import Notifier, OutboundEmail
from cubepos.validation import DeliveryError


DEFAULT_NOW = datetime(2024, 1, 20, 12, 0, 0)


class RecordingNotifier(Notifier):
    """Keeps every outbound email; set `fail` to make deliveries fail."""

    def __init__(self):
        self.sent: list[OutboundEmail] = []
        self.fail = False
        self._lock = threading.Lock()

    def _transmit(self, message: OutboundEmail) -> str:
        if self.fail:
            raise DeliveryError("SMTP delivery failed: connection refused")
        with self._lock:
            self.sent.append(message)
            return f"<msg-{len(self.sent)}@cubepos.test>"

    def reset(self):
        with self._lock:
            self.sent.clear()
        self.fail = False


class MutableClock:
    def __init__(self, now: datetime = DEFAULT_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(
        {
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'EMAIL_SERVICE': 'console',
            'STOCK_ALERTS_ENABLED': True,
            'REMINDER_GRACE_DAYS': 0,
        },
        notifier=RecordingNotifier(),
        clock=MutableClock(),
    )

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Let alerts queued by a previous test finish before resetting
        get_stock_alerts().join()
        app.extensions['cubepos.notifier'].reset()
        app.extensions['cubepos.clock'].set(DEFAULT_NOW)

        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def notifier(app, db_session):
    return app.extensions['cubepos.notifier']


@pytest.fixture(scope='function')
def clock(app, db_session):
    return app.extensions['cubepos.clock']


@pytest.fixture(scope='function')
def alerts(app, db_session):
    return get_stock_alerts()


# =============================================================================
# FACTORIES
# =============================================================================

def make_tenant(session, name="Acme Crafts", email="owner@acme.test"):
    user = User(name=f"{name} Owner", email=email, role="TENANT")
    session.add(user)
    session.flush()
    tenant = Tenant(user_id=user.id, business_name=name)
    session.add(tenant)
    session.commit()
    return tenant


def make_cashier(session, email="cashier@cubepos.test"):
    user = User(name="Till Operator", email=email, role="CASHIER")
    session.add(user)
    session.commit()
    return user


def make_variant(session, tenant, *, stock=10, price="5.00", threshold=5,
                 color="Red", size="M", barcode=None, product_name="Tote Bag"):
    product = Product(tenant_id=tenant.id, name=product_name)
    session.add(product)
    session.flush()
    variant = ProductVariant(
        product_id=product.id,
        color=color,
        size=size,
        barcode=barcode,
        price=Decimal(price),
        stock=stock,
        low_stock_threshold=threshold,
        approval_status="APPROVED",
    )
    session.add(variant)
    session.commit()
    return variant


def make_cube(session, code="C-01", daily_rate="10.00"):
    cube = Cube(code=code, daily_rate=Decimal(daily_rate))
    session.add(cube)
    session.commit()
    return cube


def make_rental(session, tenant, cube, *, start=datetime(2024, 1, 1), end=datetime(2024, 3, 1),
                daily_rate="10.00", status=RENTAL_ACTIVE):
    rental = Rental(
        tenant_id=tenant.id,
        cube_id=cube.id,
        start_date=start,
        end_date=end,
        daily_rate=Decimal(daily_rate),
        status=status,
    )
    session.add(rental)
    session.commit()
    return rental


@pytest.fixture(scope='function')
def tenant_a(db_session):
    return make_tenant(db_session, "Acme Crafts", "owner@acme.test")


@pytest.fixture(scope='function')
def tenant_b(db_session):
    return make_tenant(db_session, "Beta Ceramics", "owner@beta.test")

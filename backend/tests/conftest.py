"""
Pytest fixtures for barberpos backend tests.

Provides the test application, a per-test clean database, two tenants
for isolation checks, catalog/booking factories and request headers.
"""

import pytest

from barberpos import create_app
from barberpos.extensions import db
from barberpos.models import Tenant, Provider, Service, Product, Booking, RevenueConfig


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'INFO',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh database contents for each test."""
    # Clear all data but keep schema
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    db.session.expunge_all()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """Tenant A (first barbershop)."""
    tenant = Tenant(name="Barberia Norte", code="NORTE", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Tenant B (second barbershop)."""
    tenant = Tenant(name="Barberia Sur", code="SUR", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def make_provider(db_session):
    def _make(tenant, name="Carlos", is_active=True):
        provider = Provider(tenant_id=tenant.id, name=name, is_active=is_active)
        db_session.add(provider)
        db_session.commit()
        return provider
    return _make


@pytest.fixture(scope='function')
def make_service(db_session):
    def _make(tenant, price_cents=10000, name="Corte clasico", discounted_price_cents=None, is_active=True):
        service = Service(
            tenant_id=tenant.id,
            name=name,
            price_cents=price_cents,
            discounted_price_cents=discounted_price_cents,
            duration_minutes=30,
            is_active=is_active,
        )
        db_session.add(service)
        db_session.commit()
        return service
    return _make


@pytest.fixture(scope='function')
def make_product(db_session):
    def _make(tenant, price_cents=5000, stock_qty=10, name="Pomada", sku=None, discounted_price_cents=None):
        product = Product(
            tenant_id=tenant.id,
            sku=sku,
            name=name,
            price_cents=price_cents,
            discounted_price_cents=discounted_price_cents,
            stock_qty=stock_qty,
            is_active=True,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def make_booking(db_session):
    def _make(tenant, price_cents=30000, provider=None, service=None, customer_name="Juan Perez"):
        booking = Booking(
            tenant_id=tenant.id,
            provider_id=provider.id if provider else None,
            service_id=service.id if service else None,
            customer_name=customer_name,
            price_cents=price_cents,
            settled=False,
        )
        db_session.add(booking)
        db_session.commit()
        return booking
    return _make


@pytest.fixture(scope='function')
def set_revenue_config(db_session):
    """Write a tenant's revenue config row directly."""
    def _set(tenant, **values):
        config = db_session.query(RevenueConfig).filter_by(tenant_id=tenant.id).first()
        if config is None:
            config = RevenueConfig(tenant_id=tenant.id)
            db_session.add(config)
        for key, value in values.items():
            setattr(config, key, value)
        db_session.commit()
        return config
    return _set


@pytest.fixture(scope='function')
def provider_a(make_provider, tenant_a):
    return make_provider(tenant_a, name="Carlos")


@pytest.fixture(scope='function')
def service_a(make_service, tenant_a):
    return make_service(tenant_a, price_cents=10000, name="Corte clasico")


@pytest.fixture(scope='function')
def product_a(make_product, tenant_a):
    return make_product(tenant_a, price_cents=5000, stock_qty=10, name="Pomada mate", sku="POM-001")


def tenant_headers(tenant, actor="cashier-1") -> dict:
    """Headers the upstream gateway forwards after authenticating a caller."""
    headers = {'X-Tenant-Id': str(tenant.id)}
    if actor:
        headers['X-Actor-Id'] = actor
    return headers


@pytest.fixture(scope='function')
def headers_a(tenant_a):
    return tenant_headers(tenant_a)


@pytest.fixture(scope='function')
def headers_b(tenant_b):
    return tenant_headers(tenant_b, actor="cashier-b")

"""
Shared fixtures for the BuildMart test suite.

Every test gets a fresh app on an in-memory SQLite database, with one
application context held open for the whole test.
"""

import pytest
from datetime import datetime, timedelta
from flask import g

from buildmart import create_app
from buildmart.extensions import db as _db
from buildmart.models import User, Distributor, Product, Coupon
from buildmart.services.auth_service import AuthService
from buildmart.services.order_service import OrderService


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


# ============================================================================
# Principals
# ============================================================================

def _make_user(name, email, role=User.ROLE_USER):
    user = User(name=name, email=email, role=role, phone='9876543210')
    user.password = 'secret123'
    _db.session.add(user)
    _db.session.commit()
    return user


def _make_distributor(business_name, email, approved=True):
    distributor = Distributor(
        business_name=business_name,
        owner_name='Owner',
        email=email,
        city='Pune',
        state='Maharashtra',
        pincode='411001',
        is_approved=approved
    )
    distributor.password = 'secret123'
    _db.session.add(distributor)
    _db.session.commit()
    return distributor


@pytest.fixture
def buyer(db):
    return _make_user('Asha Buyer', 'asha@buildmart.in')


@pytest.fixture
def other_buyer(db):
    return _make_user('Ravi Buyer', 'ravi@buildmart.in')


@pytest.fixture
def admin(db):
    return _make_user('Site Admin', 'admin@buildmart.in', role=User.ROLE_ADMIN)


@pytest.fixture
def distributor(db):
    return _make_distributor('Sharma Building Materials', 'sharma@buildmart.in')


@pytest.fixture
def other_distributor(db):
    return _make_distributor('Patel Hardware', 'patel@buildmart.in')


# ============================================================================
# Catalog and coupons
# ============================================================================

@pytest.fixture
def products(db, distributor):
    cement = Product(name='OPC Cement', category='Cement', unit='bag', price=100.0, stock=50,
                     distributor_id=distributor.id)
    steel = Product(name='TMT Bar 12mm', category='Steel', unit='piece', price=500.0, stock=10,
                    distributor_id=distributor.id)
    db.session.add_all([cement, steel])
    db.session.commit()
    return cement, steel


@pytest.fixture
def coupon(db):
    coupon = Coupon(
        code='SAVE10',
        discount_type=Coupon.TYPE_PERCENTAGE,
        discount_value=10,
        min_purchase=0,
        max_discount=50,
        expiry_date=datetime.utcnow() + timedelta(days=30)
    )
    db.session.add(coupon)
    db.session.commit()
    return coupon


@pytest.fixture
def address():
    return {
        'full_name': 'Asha Buyer',
        'phone': '9876543210',
        'address': '12 MG Road',
        'city': 'Pune',
        'state': 'Maharashtra',
        'pincode': '411001',
    }


@pytest.fixture
def place_order(buyer, distributor, products, address):
    """Factory placing a 3 x cement + 1 x steel order (subtotal 800)."""
    cement, steel = products

    def _place(user=None, payment_method='COD', coupon_code=None, items=None, **kwargs):
        return OrderService.create_order(
            user=user or buyer,
            distributor_id=distributor.id,
            shipping_address=dict(address),
            payment_method=payment_method,
            items_data=items or [
                {'product_id': cement.id, 'quantity': 3},
                {'product_id': steel.id, 'quantity': 1},
            ],
            coupon_code=coupon_code,
            **kwargs
        )

    return _place


# ============================================================================
# HTTP client
# ============================================================================

class ApiClient:
    """
    Test client that authenticates each call with a bearer token.

    Requests share the test's application context, so the principal cached
    by Flask-Login on ``g`` is dropped before every call.
    """

    def __init__(self, client):
        self.client = client

    def open(self, method, url, as_user=None, **kwargs):
        headers = dict(kwargs.pop('headers', None) or {})
        if as_user is not None:
            headers['Authorization'] = f'Bearer {AuthService.issue_token(as_user)}'
        g.pop('_login_user', None)
        return self.client.open(url, method=method, headers=headers, **kwargs)

    def get(self, url, **kwargs):
        return self.open('GET', url, **kwargs)

    def post(self, url, **kwargs):
        return self.open('POST', url, **kwargs)

    def put(self, url, **kwargs):
        return self.open('PUT', url, **kwargs)

    def delete(self, url, **kwargs):
        return self.open('DELETE', url, **kwargs)


@pytest.fixture
def api(app):
    return ApiClient(app.test_client())

"""
Pytest fixtures for storefront backend tests.

Provides the app on in-memory SQLite, per-test table clearing, catalog and
inventory factories, and bearer-token headers.
"""

import pytest
from storefront import create_app
from storefront.extensions import db
from storefront.models import Inventory
from storefront.services import catalog_service, session_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

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
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory for simple products with one or more colors.

    make_product(price="500.00", stock=10) creates one "Red" color with a
    single Default option; pass fragrances=[...] for scented variants and
    stock={fragrance: qty} for per-option stock.
    """
    def _make(name="Rose Candle", price="500.00", stock=10, fragrances=None, colors=None, threshold=5):
        if colors is None:
            colors = [{
                "color_name": "Red",
                "current_price": price,
                "fragrances": fragrances or [],
                "stock": stock,
            }]
        return catalog_service.create_product({
            "product_name": name,
            "type": "simple",
            "colors": colors,
            "threshold": threshold,
        })
    return _make


@pytest.fixture(scope='function')
def make_variable_product(db_session):
    """Factory for variable products: one model per entry of models."""
    def _make(name="Diffuser Set", models=None, threshold=5):
        if models is None:
            models = [
                {"model_name": "Small", "colors": [{"color_name": "White", "current_price": "300.00", "stock": 10}]},
                {"model_name": "Large", "colors": [{"color_name": "White", "current_price": "800.00", "stock": 10}]},
            ]
        return catalog_service.create_product({
            "product_name": name,
            "type": "variable",
            "models": models,
            "threshold": threshold,
        })
    return _make


@pytest.fixture(scope='function')
def inventory_of(db_session):
    """Look up the active inventory record of a product color/option."""
    def _lookup(product, fragrance="Default", color_index=0, model_index=None):
        if model_index is None:
            color = product.colors[color_index]
            model_id = ""
        else:
            model = product.models[model_index]
            color = model.colors[color_index]
            model_id = model.model_id
        return db.session.query(Inventory).filter_by(
            product_id=product.product_id,
            color_id=color.color_id,
            variable_model_id=model_id,
            fragrance=fragrance,
            is_active=True,
        ).one()
    return _lookup


@pytest.fixture(scope='function')
def order_item():
    """Build an order/cart item payload in the cart item shape."""
    def _item(product, quantity=1, fragrance=None, color_index=0, model_index=None):
        if model_index is None:
            color = product.colors[color_index]
            item = {"product_id": product.product_id, "selected_color": {"color_id": color.color_id}}
        else:
            model = product.models[model_index]
            item = {
                "product_id": product.product_id,
                "selected_model": {"model_id": model.model_id},
                "selected_color": {"color_id": model.colors[color_index].color_id},
            }
        if fragrance:
            item["selected_fragrance"] = fragrance
        item["quantity"] = quantity
        return item
    return _item


ADDRESS = {
    "address_id": "addr-1",
    "full_name": "Test Customer",
    "address_line1": "12 Market Street",
    "city": "Pune",
    "pincode": "411001",
    "state": "Maharashtra",
    "mobile": "9800000000",
}


@pytest.fixture(scope='function')
def address():
    return dict(ADDRESS)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def user_headers(app):
    return auth_headers(session_service.issue_token("user-1", "user"))


@pytest.fixture(scope='function')
def other_user_headers(app):
    return auth_headers(session_service.issue_token("user-2", "user"))


@pytest.fixture(scope='function')
def admin_headers(app):
    return auth_headers(session_service.issue_token("admin-1", "admin"))

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from config import TestConfig
from models import db, MainUser, Product, Discount


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.session.add(MainUser(
            username="kasir1", password=generate_password_hash("rahasia"), name="Kasir Satu", role="kasir"
        ))
        db.session.add(MainUser(
            username="admin", password=generate_password_hash("admin123"), name="Admin", role="admin"
        ))
        db.session.add(Product(name="Kopi Susu", barcode="899001", price=15000, stock=10))
        db.session.add(Product(name="Roti Tawar", barcode="899002", price=12000, stock=0))
        db.session.add(Product(name="Teh Lama", barcode="899003", price=5000, stock=5, is_active=False))
        db.session.add(Discount(name="Promo 10%", type="PERCENT", value=10, min_purchase=0, is_automatic=True))
        db.session.add(Discount(name="Diskon Mati", type="NOMINAL", value=1000, is_active=False))
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def kasir(client):
    response = client.post("/login", json={"username": "kasir1", "password": "rahasia"})
    assert response.status_code == 200
    return client


@pytest.fixture
def admin(client):
    response = client.post("/login", json={"username": "admin", "password": "admin123"})
    assert response.status_code == 200
    return client

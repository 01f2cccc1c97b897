from unittest.mock import patch

from midtrans import MidtransError
from models import db, Product, QrisPayment, Setting, Transaction

QRIS_RESULT = {
    "qr_string": "00020101021226",
    "order_id": "QRIS-20261016120000-abcd1234",
    "expires_at": "2026-10-16 12:15:00",
}


def sale_payload(**overrides):
    payload = {
        "items": [{"product_id": 1, "quantity": 2, "price_at_time": 15000, "discount_amount": 0}],
        "discount_id": 1,
        "discount_amount": 3000,
        "tax_amount": 0,
        "total_amount": 27000,
        "payment_method": "CASH",
        "amount_paid": 30000,
        "notes": "",
    }
    payload.update(overrides)
    return payload


#=========================== AUTH ===========================#

def test_default_settings_are_seeded(app):
    assert db.session.get(Setting, "tax.rate").value == "11"


def test_login_wrong_password(client):
    response = client.post("/login", json={"username": "kasir1", "password": "salah"})
    assert response.status_code == 401
    assert response.get_json()["message"] == "Username atau password salah!"


def test_api_requires_login(client):
    response = client.get("/api/discounts")
    assert response.status_code == 401
    assert response.get_json()["status"] == "error"


def test_logout(kasir):
    assert kasir.post("/logout").status_code == 200


#=========================== PRODUK / DISKON / SETTINGS ===========================#

def test_product_by_barcode(kasir):
    response = kasir.get("/api/products/barcode/899001")
    assert response.status_code == 200
    assert response.get_json()["name"] == "Kopi Susu"
    assert response.get_json()["stock"] == 10


def test_inactive_or_unknown_barcode(kasir):
    assert kasir.get("/api/products/barcode/899003").status_code == 404
    response = kasir.get("/api/products/barcode/000")
    assert response.status_code == 404
    assert response.get_json()["message"] == "Produk tidak ditemukan atau tidak aktif"


def test_only_active_discounts_are_listed(kasir):
    names = [d["name"] for d in kasir.get("/api/discounts").get_json()]
    assert names == ["Promo 10%"]


def test_settings(kasir):
    data = kasir.get("/api/settings").get_json()
    assert data["tax_enabled"] is False
    assert data["tax_rate"] == 11.0
    assert data["tax_label"] == "PPN"
    assert data["timezone"] == "Asia/Jakarta"


#=========================== QRIS ===========================#

def test_qris_generate_below_minimum(kasir):
    response = kasir.post("/api/qris/generate", json={"amount": 1000})
    assert response.status_code == 400
    assert response.get_json()["message"] == "Minimum pembayaran QRIS adalah Rp 1.500"


def test_qris_generate_stores_payment(app, kasir):
    gateway = app.extensions["midtrans"]
    with patch.object(gateway, "charge_qris", return_value=QRIS_RESULT) as charge:
        response = kasir.post("/api/qris/generate", json={"amount": 27000})
    assert response.status_code == 200
    assert response.get_json()["order_id"] == QRIS_RESULT["order_id"]
    charge.assert_called_once_with(27000.0)

    payment = db.session.query(QrisPayment).filter_by(order_id=QRIS_RESULT["order_id"]).first()
    assert payment.status == "PENDING"
    assert payment.amount == 27000


def test_qris_generate_gateway_error(app, kasir):
    gateway = app.extensions["midtrans"]
    with patch.object(gateway, "charge_qris", side_effect=MidtransError("Gagal menghubungi payment gateway")):
        response = kasir.post("/api/qris/generate", json={"amount": 27000})
    assert response.status_code == 502


def test_qris_status_settles_payment(app, kasir):
    gateway = app.extensions["midtrans"]
    with patch.object(gateway, "charge_qris", return_value=QRIS_RESULT):
        kasir.post("/api/qris/generate", json={"amount": 27000})

    status = {"status": "settlement", "transaction_status": "settlement", "order_id": QRIS_RESULT["order_id"]}
    with patch.object(gateway, "check_status", return_value=status):
        response = kasir.get(f"/api/qris/{QRIS_RESULT['order_id']}/status")
    assert response.get_json()["status"] == "settlement"

    payment = db.session.query(QrisPayment).filter_by(order_id=QRIS_RESULT["order_id"]).first()
    assert payment.status == "SETTLED"
    assert payment.settled_at is not None


def test_qris_status_gateway_error(app, kasir):
    gateway = app.extensions["midtrans"]
    with patch.object(gateway, "check_status", side_effect=MidtransError("Gagal cek status")):
        response = kasir.get("/api/qris/QRIS-1/status")
    assert response.status_code == 502


def test_qris_cancel_marks_pending_payment(app, kasir):
    gateway = app.extensions["midtrans"]
    with patch.object(gateway, "charge_qris", return_value=QRIS_RESULT):
        kasir.post("/api/qris/generate", json={"amount": 27000})
    with patch.object(gateway, "cancel") as cancel:
        response = kasir.post(f"/api/qris/{QRIS_RESULT['order_id']}/cancel")
    assert response.get_json() == {"status": "ok"}
    cancel.assert_called_once_with(QRIS_RESULT["order_id"])

    payment = db.session.query(QrisPayment).filter_by(order_id=QRIS_RESULT["order_id"]).first()
    assert payment.status == "CANCELLED"


def test_qris_qr_image(app, kasir):
    with patch.object(app.extensions["midtrans"], "charge_qris", return_value=QRIS_RESULT):
        kasir.post("/api/qris/generate", json={"amount": 27000})
    response = kasir.get(f"/api/qris/{QRIS_RESULT['order_id']}/qr.png")
    assert response.status_code == 200
    assert response.mimetype == "image/png"
    assert response.data[:8] == b"\x89PNG\r\n\x1a\n"

    assert kasir.get("/api/qris/QRIS-tidak-ada/qr.png").status_code == 404


#=========================== TRANSAKSI ===========================#

def test_create_transaction(kasir):
    response = kasir.post("/api/transactions", json=sale_payload())
    assert response.status_code == 201
    data = response.get_json()
    assert data["status"] == "COMPLETED"
    assert data["change_given"] == 3000
    assert data["cashier_name"] == "Kasir Satu"
    assert data["items"][0]["product_name"] == "Kopi Susu"
    assert data["items"][0]["subtotal"] == 30000
    assert db.session.get(Product, 1).stock == 8


def test_transaction_requires_items(kasir):
    response = kasir.post("/api/transactions", json=sale_payload(items=[]))
    assert response.status_code == 400
    assert response.get_json()["message"] == "Keranjang kosong"


def test_transaction_insufficient_cash(kasir):
    response = kasir.post("/api/transactions", json=sale_payload(amount_paid=26999))
    assert response.status_code == 400
    assert response.get_json()["message"] == "Uang bayar tidak cukup"


def test_transaction_invalid_method(kasir):
    response = kasir.post("/api/transactions", json=sale_payload(payment_method="GOPAY"))
    assert response.status_code == 400


def test_transaction_out_of_stock_rolls_back(kasir):
    items = [
        {"product_id": 1, "quantity": 1, "price_at_time": 15000},
        {"product_id": 2, "quantity": 1, "price_at_time": 12000},
    ]
    response = kasir.post("/api/transactions", json=sale_payload(items=items))
    assert response.status_code == 409
    assert "Roti Tawar" in response.get_json()["message"]
    assert db.session.get(Product, 1).stock == 10
    assert db.session.query(Transaction).count() == 0


def test_transaction_unknown_product(kasir):
    items = [{"product_id": 99, "quantity": 1, "price_at_time": 1000}]
    response = kasir.post("/api/transactions", json=sale_payload(items=items))
    assert response.status_code == 404


def test_void_requires_admin(kasir):
    tx_id = kasir.post("/api/transactions", json=sale_payload()).get_json()["id"]
    response = kasir.post(f"/api/transactions/{tx_id}/void")
    assert response.status_code == 403


def test_void_restores_stock(admin):
    tx_id = admin.post("/api/transactions", json=sale_payload()).get_json()["id"]
    assert db.session.get(Product, 1).stock == 8

    response = admin.post(f"/api/transactions/{tx_id}/void")
    assert response.status_code == 200
    assert response.get_json()["status"] == "VOID"
    assert db.session.get(Product, 1).stock == 10

    again = admin.post(f"/api/transactions/{tx_id}/void")
    assert again.status_code == 409


def test_rupiah_filter(app):
    assert app.jinja_env.filters["rupiah"](150000) == "Rp 150.000"

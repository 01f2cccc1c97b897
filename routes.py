from flask import request, jsonify, send_file, current_app
from flask_login import login_user, login_required, logout_user, current_user
from werkzeug.security import check_password_hash
from models import db, MainUser, Product, Discount, Transaction, TransactionItem, QrisPayment
from utils import get_tax_settings, local_now, error_response
from midtrans import MidtransError
from datetime import datetime
import io
import qrcode

PAYMENT_METHODS = ("CASH", "DEBIT", "QRIS")


class TransactionRejected(Exception):
    def __init__(self, message, code=400):
        super().__init__(message)
        self.code = code


def init_routes(app):

#=========================== LOGIN ===========================#

    @app.route("/login", methods=["POST"])
    def login():
        data = request.get_json(silent=True) or request.form
        username = (data.get("username") or "").strip()
        password = data.get("password") or ""

        user = db.session.query(MainUser).filter_by(username=username).first()
        if not user or not check_password_hash(user.password, password):
            return error_response("Username atau password salah!", 401)

        login_user(user)
        app.logger.info("Kasir %s login", user.username)
        return jsonify({
            "status": "ok",
            "user": {"id": user.id, "username": user.username, "name": user.name, "role": user.role},
        })

#=========================== LOGOUT ===========================#

    @app.route("/logout", methods=["POST"])
    @login_required
    def logout():
        username = current_user.username
        logout_user()
        return jsonify({"status": "ok", "message": f"Hi {username}, sampai jumpa lagi!"})

#=========================== PRODUK (BARCODE) ===========================#

    @app.route("/api/products/barcode/<string:barcode>")
    @login_required
    def product_by_barcode(barcode):
        product = db.session.query(Product).filter_by(barcode=barcode, is_active=True).first()
        if not product:
            return error_response("Produk tidak ditemukan atau tidak aktif", 404)
        return jsonify(product.to_dict())

#=========================== DISKON ===========================#

    @app.route("/api/discounts")
    @login_required
    def list_discounts():
        discounts = (
            db.session.query(Discount)
            .filter_by(is_active=True)
            .order_by(Discount.name.asc())
            .all()
        )
        return jsonify([d.to_dict() for d in discounts])

#=========================== SETTINGS ===========================#

    @app.route("/api/settings")
    @login_required
    def get_settings():
        tax = get_tax_settings()
        return jsonify({
            "tax_rate": tax["rate"],
            "tax_included": tax["is_included"],
            "tax_label": tax["label"],
            "tax_enabled": tax["is_enabled"],
            "timezone": app.config.get("TIMEZONE"),
        })

#=========================== QRIS ===========================#

    @app.route("/api/qris/generate", methods=["POST"])
    @login_required
    def generate_qris():
        data = request.get_json(silent=True) or {}
        try:
            amount = float(data.get("amount", 0))
        except (TypeError, ValueError):
            return error_response("Nominal tidak valid")

        min_amount = app.config.get("QRIS_MIN_AMOUNT", 1500)
        if amount < min_amount:
            return error_response(f"Minimum pembayaran QRIS adalah Rp {min_amount:,}".replace(",", "."))

        gateway = current_app.extensions["midtrans"]
        try:
            result = gateway.charge_qris(amount)
        except MidtransError as e:
            return error_response(str(e), 502)

        payment = QrisPayment(
            order_id=result["order_id"],
            amount=amount,
            qr_string=result["qr_string"],
            status="PENDING",
            expires_at=result["expires_at"],
        )
        db.session.add(payment)
        db.session.commit()
        return jsonify(result)

    @app.route("/api/qris/<string:order_id>/status")
    @login_required
    def qris_status(order_id):
        gateway = current_app.extensions["midtrans"]
        try:
            result = gateway.check_status(order_id)
        except MidtransError as e:
            app.logger.warning("Cek status QRIS %s gagal: %s", order_id, e)
            return error_response(str(e), 502)

        # update DB hanya saat status final
        payment = db.session.query(QrisPayment).filter_by(order_id=order_id).first()
        if payment:
            if result["status"] == "settlement" and payment.status != "SETTLED":
                payment.status = "SETTLED"
                payment.settled_at = datetime.utcnow()
                app.logger.info("QRIS payment settled: order_id=%s", order_id)
            elif result["status"] == "expire" and payment.status != "EXPIRED":
                payment.status = "EXPIRED"
            db.session.commit()

        return jsonify(result)

    @app.route("/api/qris/<string:order_id>/cancel", methods=["POST"])
    @login_required
    def qris_cancel(order_id):
        current_app.extensions["midtrans"].cancel(order_id)

        payment = db.session.query(QrisPayment).filter_by(order_id=order_id).first()
        if payment and payment.status == "PENDING":
            payment.status = "CANCELLED"
            db.session.commit()
        return jsonify({"status": "ok"})

    @app.route("/api/qris/<string:order_id>/qr.png")
    @login_required
    def qris_qr_image(order_id):
        payment = db.session.query(QrisPayment).filter_by(order_id=order_id).first()
        if not payment or not payment.qr_string:
            return error_response("QRIS tidak ditemukan", 404)

        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=8,
            border=2,
        )
        qr.add_data(payment.qr_string)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        buffer.seek(0)
        return send_file(buffer, mimetype="image/png")

#=========================== TRANSAKSI ===========================#

    @app.route("/api/transactions", methods=["POST"])
    @login_required
    def create_transaction():
        data = request.get_json(silent=True)
        if not data:
            return error_response("Tidak ada data")

        items = data.get("items") or []
        if not items:
            return error_response("Keranjang kosong")

        method = str(data.get("payment_method", "")).upper()
        if method not in PAYMENT_METHODS:
            return error_response("Metode pembayaran tidak valid")

        try:
            total = float(data.get("total_amount", 0))
            paid = float(data.get("amount_paid", 0))
            discount_amount = float(data.get("discount_amount", 0) or 0)
            tax_amount = float(data.get("tax_amount", 0) or 0)
        except (TypeError, ValueError):
            return error_response("Nominal transaksi tidak valid")

        if paid < total:
            return error_response("Uang bayar tidak cukup")

        discount_id = data.get("discount_id")
        if discount_id is not None and db.session.get(Discount, discount_id) is None:
            return error_response("Diskon tidak ditemukan")

        # ----------------- Simpan transaksi + kurangi stok -----------------
        try:
            tx = Transaction(
                cashier_id=current_user.id,
                created_at=local_now(),
                total_amount=total,
                discount_id=discount_id,
                discount_amount=discount_amount,
                tax_amount=tax_amount,
                payment_method=method,
                amount_paid=paid,
                change_given=paid - total,
                notes=data.get("notes") or None,
            )
            db.session.add(tx)

            for item in items:
                try:
                    product_id = int(item["product_id"])
                    qty = int(item["quantity"])
                    price = float(item["price_at_time"])
                    item_discount = float(item.get("discount_amount", 0) or 0)
                except (KeyError, TypeError, ValueError):
                    raise TransactionRejected("Item transaksi tidak valid")

                product = db.session.get(Product, product_id)
                if not product or not product.is_active:
                    raise TransactionRejected(f"Produk id {product_id} tidak ditemukan", 404)
                if qty < 1:
                    raise TransactionRejected(f"Jumlah {product.name} tidak valid")
                if (product.stock or 0) < qty:
                    raise TransactionRejected(
                        f"Stok {product.name} tidak cukup (tersisa {product.stock or 0})", 409
                    )

                tx.items.append(TransactionItem(
                    product_id=product.id,
                    quantity=qty,
                    price_at_time=price,
                    subtotal=price * qty,
                    discount_amount=item_discount,
                ))
                product.stock = (product.stock or 0) - qty

            db.session.commit()
        except TransactionRejected as e:
            db.session.rollback()
            return error_response(str(e), e.code)

        app.logger.info("Transaksi %s disimpan oleh %s", tx.id, current_user.username)
        return jsonify(tx.to_dict()), 201

    @app.route("/api/transactions/<string:tx_id>/void", methods=["POST"])
    @login_required
    def void_transaction(tx_id):
        if not current_user.is_admin:
            return error_response("Hanya admin yang bisa membatalkan transaksi", 403)

        tx = db.session.get(Transaction, tx_id)
        if not tx:
            return error_response("Transaksi tidak ditemukan", 404)
        if tx.status == "VOID":
            return error_response("Transaksi sudah dibatalkan sebelumnya", 409)

        tx.status = "VOID"
        tx.voided_by = current_user.id
        tx.voided_at = local_now()

        # kembalikan stok
        for item in tx.items:
            product = db.session.get(Product, item.product_id)
            if product:
                product.stock = (product.stock or 0) + item.quantity

        db.session.commit()
        app.logger.info("Transaksi %s di-void oleh %s", tx.id, current_user.username)
        return jsonify(tx.to_dict())

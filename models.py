# models.py
from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from datetime import datetime
import uuid

db = SQLAlchemy()

# Kasir yang bisa login
class MainUser(UserMixin, db.Model):
    __tablename__ = "main_user"
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password = db.Column(db.String(200), nullable=False)
    name = db.Column(db.String(100))
    role = db.Column(db.String(20), default="kasir")  # admin / kasir

    @property
    def is_admin(self):
        return self.role == "admin"


class Product(db.Model):
    __tablename__ = "product"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    barcode = db.Column(db.String(64), unique=True, index=True)
    price = db.Column(db.Float, nullable=False)
    stock = db.Column(db.Integer, default=0)
    is_active = db.Column(db.Boolean, default=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "barcode": self.barcode,
            "price": self.price,
            "stock": self.stock or 0,
            "is_active": bool(self.is_active),
        }


class Discount(db.Model):
    __tablename__ = "discount"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(10), nullable=False)  # NOMINAL / PERCENT
    value = db.Column(db.Float, nullable=False)
    min_purchase = db.Column(db.Float, default=0)
    is_active = db.Column(db.Boolean, default=True)
    is_automatic = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "value": self.value,
            "min_purchase": self.min_purchase or 0,
            "is_active": bool(self.is_active),
            "is_automatic": bool(self.is_automatic),
        }


# Pengaturan toko (key/value), mis. tax.rate
class Setting(db.Model):
    __tablename__ = "setting"
    key = db.Column(db.String(100), primary_key=True)
    value = db.Column(db.String(300), nullable=False)


class Transaction(db.Model):
    __tablename__ = "pos_transaction"
    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    cashier_id = db.Column(db.Integer, db.ForeignKey("main_user.id"), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    total_amount = db.Column(db.Float, nullable=False)
    discount_id = db.Column(db.Integer, db.ForeignKey("discount.id"))
    discount_amount = db.Column(db.Float, default=0)
    tax_amount = db.Column(db.Float, default=0)
    payment_method = db.Column(db.String(10), nullable=False)  # CASH / DEBIT / QRIS
    amount_paid = db.Column(db.Float, nullable=False)
    change_given = db.Column(db.Float, default=0)
    status = db.Column(db.String(20), default="COMPLETED")  # COMPLETED / VOID
    voided_by = db.Column(db.Integer, db.ForeignKey("main_user.id"))
    voided_at = db.Column(db.DateTime)
    notes = db.Column(db.Text)

    items = db.relationship("TransactionItem", backref="transaction", cascade="all, delete-orphan")
    cashier = db.relationship("MainUser", foreign_keys=[cashier_id])

    def to_dict(self):
        return {
            "id": self.id,
            "cashier_id": self.cashier_id,
            "cashier_name": self.cashier.name or self.cashier.username if self.cashier else None,
            "timestamp": self.created_at.strftime("%Y-%m-%d %H:%M:%S") if self.created_at else None,
            "total_amount": self.total_amount,
            "discount_id": self.discount_id,
            "discount_amount": self.discount_amount or 0,
            "tax_amount": self.tax_amount or 0,
            "payment_method": self.payment_method,
            "amount_paid": self.amount_paid,
            "change_given": self.change_given or 0,
            "status": self.status,
            "notes": self.notes,
            "items": [i.to_dict() for i in self.items],
        }


class TransactionItem(db.Model):
    __tablename__ = "pos_transaction_item"
    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(36), db.ForeignKey("pos_transaction.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("product.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_at_time = db.Column(db.Float, nullable=False)
    subtotal = db.Column(db.Float, nullable=False)
    discount_amount = db.Column(db.Float, default=0)

    product = db.relationship("Product")

    def to_dict(self):
        return {
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "price_at_time": self.price_at_time,
            "subtotal": self.subtotal,
            "discount_amount": self.discount_amount or 0,
        }


class QrisPayment(db.Model):
    __tablename__ = "qris_payment"
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(64), unique=True, nullable=False)
    amount = db.Column(db.Float, nullable=False)
    qr_string = db.Column(db.Text)
    status = db.Column(db.String(20), default="PENDING")  # PENDING / SETTLED / EXPIRED / CANCELLED
    expires_at = db.Column(db.String(30))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    settled_at = db.Column(db.DateTime)

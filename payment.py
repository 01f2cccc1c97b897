"""
Finalisasi pembayaran: validasi metode bayar, pembulatan, dan payload transaksi.

Harga yang dikirim adalah harga snapshot saat item masuk keranjang
(price_at_time), bukan harga katalog terbaru.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from money import round_rupiah, format_rupiah

logger = logging.getLogger(__name__)


class PaymentMethod(str, Enum):
    CASH = "CASH"
    DEBIT = "DEBIT"
    QRIS = "QRIS"


class PaymentValidationError(Exception):
    pass


class SubmissionError(Exception):
    pass


@dataclass(frozen=True)
class PaymentItem:
    product_id: int
    quantity: int
    price_at_time: int
    discount_amount: int


@dataclass(frozen=True)
class PaymentSubmission:
    items: List[PaymentItem]
    discount_id: Optional[int]
    discount_amount: int
    tax_amount: int
    total_amount: int
    payment_method: PaymentMethod
    amount_paid: int
    change: int
    notes: str = ""

    def to_payload(self):
        return {
            "items": [
                {
                    "product_id": i.product_id,
                    "quantity": i.quantity,
                    "price_at_time": i.price_at_time,
                    "discount_amount": i.discount_amount,
                }
                for i in self.items
            ],
            "discount_id": self.discount_id,
            "discount_amount": self.discount_amount,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
            "payment_method": self.payment_method.value,
            "amount_paid": self.amount_paid,
            "notes": self.notes,
        }


def finalize_payment(cart, method, amount_paid=None, notes=""):
    method = PaymentMethod(method)
    if cart.is_empty:
        raise PaymentValidationError("Keranjang kosong")

    total = round_rupiah(cart.total)
    if method is PaymentMethod.CASH:
        paid = round_rupiah(amount_paid or 0)
        if paid < total:
            raise PaymentValidationError(
                f"Uang bayar tidak cukup: {format_rupiah(paid)} < {format_rupiah(total)}"
            )
    else:
        # DEBIT / QRIS selalu pas, tidak ada kembalian
        paid = total

    return PaymentSubmission(
        items=[
            PaymentItem(line.product_id, line.quantity, line.unit_price, line.item_discount)
            for line in cart.lines
        ],
        discount_id=cart.discount.discount_id,
        discount_amount=round_rupiah(cart.discount_amount),
        tax_amount=round_rupiah(cart.tax_amount),
        total_amount=total,
        payment_method=method,
        amount_paid=paid,
        change=max(0, paid - total),
        notes=notes or "",
    )


def checkout(cart, submit_transaction, method, amount_paid=None, notes=""):
    """
    Bayar -> kosongkan keranjang -> kembalikan transaksi untuk struk.
    Kalau submit gagal, keranjang TIDAK dikosongkan.
    """
    submission = finalize_payment(cart, method, amount_paid, notes)
    try:
        transaction = submit_transaction(submission.to_payload())
    except Exception as e:
        logger.error("Transaksi gagal disimpan: %s", e)
        raise SubmissionError(str(e)) from e

    cart.clear_cart()
    logger.info("Transaksi %s selesai (%s)", transaction.get("id"), submission.payment_method.value)
    return transaction

"""
Terminal POS: satu keranjang per terminal, disambungkan ke command API,
scanner barcode, kebijakan diskon, dan pembayaran.

Semua perubahan keranjang dari UI lewat method di sini supaya promo
otomatis selalu dievaluasi ulang.
"""
import asyncio
import logging
from dataclasses import dataclass

from cart import Cart, CartLine
from client import ProductNotFoundError, CommandError
from discounts import (
    DiscountDefinition,
    DiscountNotApplicableError,
    apply_automatic_discount,
    apply_manual_discount,
    clear_manual_discount,
)
from payment import PaymentMethod, PaymentValidationError, SubmissionError, checkout
from qris import QrisPaymentFlow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    level: str  # success / error / warning
    title: str
    message: str


class PosTerminal:

    def __init__(self, api, cart=None):
        self.api = api
        self.cart = cart or Cart()
        self.discounts = []
        self.notifications = []
        self.last_transaction = None
        self._unsubscribe_scan = None
        self._payments = set()

    #=========================== SESI ===========================#

    def start_session(self):
        self.load_settings()
        self.load_discounts()

    def load_settings(self):
        try:
            settings = self.api.get_settings()
        except Exception as e:
            # pajak tetap pakai nilai sebelumnya
            logger.warning("Gagal memuat settings: %s", e)
            return False
        self.cart.set_tax_config(
            float(settings.get("tax_rate", 0) or 0),
            bool(settings.get("tax_included", False)),
            settings.get("tax_label") or "PPN",
            bool(settings.get("tax_enabled", False)),
        )
        return True

    def load_discounts(self):
        try:
            self.discounts = [DiscountDefinition.from_dict(d) for d in self.api.list_discounts()]
        except Exception as e:
            logger.warning("Gagal memuat diskon: %s", e)
            return False
        self._refresh_discount()
        return True

    #=========================== KERANJANG ===========================#

    def add_product(self, product, quantity=1):
        self.cart.add_item(CartLine(
            product_id=product["id"],
            product_name=product["name"],
            unit_price=product["price"],
            quantity=quantity,
        ))
        self._refresh_discount()

    def update_quantity(self, product_id, delta):
        self.cart.update_quantity(product_id, delta)
        self._refresh_discount()

    def set_quantity(self, product_id, quantity):
        self.cart.set_quantity(product_id, quantity)
        self._refresh_discount()

    def set_item_discount(self, product_id, amount):
        self.cart.set_item_discount(product_id, amount)
        self._refresh_discount()

    def remove_item(self, product_id):
        self.cart.remove_item(product_id)
        self._refresh_discount()

    def clear_cart(self):
        self.cart.clear_cart()

    def select_discount(self, discount_id):
        definition = next((d for d in self.discounts if d.id == discount_id), None)
        if definition is None:
            raise DiscountNotApplicableError("Diskon tidak ditemukan")
        return apply_manual_discount(self.cart, definition)

    def clear_discount(self):
        return clear_manual_discount(self.cart)

    def _refresh_discount(self):
        apply_automatic_discount(self.cart, self.discounts)

    #=========================== SCANNER ===========================#

    def attach_scanner(self, source):
        self.detach_scanner()
        self._unsubscribe_scan = source.subscribe(self.handle_scan)

    def detach_scanner(self):
        if self._unsubscribe_scan:
            self._unsubscribe_scan()
            self._unsubscribe_scan = None

    def handle_scan(self, barcode):
        try:
            product = self.api.lookup_product_by_barcode(barcode)
        except ProductNotFoundError:
            self._notify("error", "Product Not Found", f"No product found for barcode: {barcode}")
            return None
        except CommandError as e:
            self._notify("error", "Scan Gagal", str(e))
            return None

        if (product.get("stock") or 0) <= 0:
            self._notify("error", "Out of Stock", f"{product['name']} is out of stock.")
            return None

        self.add_product(product)
        self._notify("success", "Added to Cart", f"{product['name']} scanned successfully.")
        return product

    #=========================== PEMBAYARAN ===========================#

    def pay(self, method, amount_paid=None, notes=""):
        # PaymentValidationError / SubmissionError diteruskan ke pemanggil
        transaction = checkout(self.cart, self.api.submit_transaction, method, amount_paid, notes)
        self.last_transaction = transaction
        return transaction

    def qris_flow(self, on_expired=None):
        def on_success(order_id):
            # submit jalan di thread, event loop (countdown, polling) tetap hidup
            task = asyncio.get_running_loop().create_task(self._pay_qris(order_id))
            self._payments.add(task)
            task.add_done_callback(self._payment_done)

        def expired(order_id, source):
            self._notify("warning", "QR Code Kadaluarsa", "Silakan generate QR code baru.")
            if on_expired:
                on_expired(order_id, source)

        return QrisPaymentFlow(self.api, on_success=on_success, on_expired=expired)

    async def wait_payments(self):
        if self._payments:
            await asyncio.gather(*list(self._payments), return_exceptions=True)

    async def _pay_qris(self, order_id):
        try:
            await asyncio.to_thread(self.pay, PaymentMethod.QRIS, None, f"QRIS {order_id}")
        except (SubmissionError, PaymentValidationError) as e:
            # pelanggan sudah bayar, kasir harus tahu transaksi belum tercatat
            self._notify("error", "Transaction Failed", f"QRIS {order_id}: {e}")
            return
        self._notify("success", "Pembayaran Berhasil!", "Transaksi Anda telah dikonfirmasi.")

    def _payment_done(self, task):
        self._payments.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Finalisasi QRIS gagal: %s", task.exception())

    def close(self):
        self.detach_scanner()

    def _notify(self, level, title, message):
        self.notifications.append(Notification(level, title, message))
        log = logger.warning if level == "error" else logger.info
        log("%s: %s", title, message)

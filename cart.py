"""
Keranjang belanja POS: item, diskon order, dan pajak.

Semua angka turunan (subtotal, diskon, pajak, total) dihitung ulang setiap
kali diakses dari state saat ini. Tidak ada operasi yang melempar error
untuk angka yang tidak valid; nilainya di-clamp.
"""
from dataclasses import dataclass, field, replace
from typing import List, Optional


@dataclass
class CartLine:
    product_id: int
    product_name: str
    unit_price: int
    quantity: int = 1
    item_discount: int = 0

    @property
    def line_total(self):
        return self.unit_price * self.quantity - self.item_discount


@dataclass
class OrderDiscount:
    discount_id: Optional[int] = None
    name: Optional[str] = None
    nominal_amount: float = 0
    percent: Optional[float] = None
    is_manual: bool = False

    @property
    def is_empty(self):
        return self.discount_id is None


@dataclass
class TaxConfig:
    rate: float = 0
    included: bool = False
    label: str = "PPN"
    enabled: bool = False

    @property
    def active(self):
        return self.enabled and self.rate > 0


@dataclass
class Cart:
    lines: List[CartLine] = field(default_factory=list)
    discount: OrderDiscount = field(default_factory=OrderDiscount)
    tax: TaxConfig = field(default_factory=TaxConfig)
    version: int = 0

    #=========================== ITEM ===========================#

    def get_line(self, product_id):
        return next((line for line in self.lines if line.product_id == product_id), None)

    def add_item(self, line):
        # Stok TIDAK dicek di sini, pemanggil yang bertanggung jawab
        existing = self.get_line(line.product_id)
        if existing:
            existing.quantity += max(1, line.quantity)
        else:
            self.lines.append(replace(line, quantity=max(1, line.quantity),
                                      item_discount=max(0, line.item_discount or 0)))
        self._touch()

    def update_quantity(self, product_id, delta):
        line = self.get_line(product_id)
        if line:
            line.quantity = max(1, line.quantity + delta)
            self._touch()

    def set_quantity(self, product_id, quantity):
        line = self.get_line(product_id)
        if line:
            line.quantity = max(1, quantity)
            self._touch()

    def set_item_discount(self, product_id, amount):
        line = self.get_line(product_id)
        if line:
            line.item_discount = max(0, amount)
            self._touch()

    def remove_item(self, product_id):
        # satu-satunya cara qty jadi 0
        before = len(self.lines)
        self.lines = [line for line in self.lines if line.product_id != product_id]
        if len(self.lines) != before:
            self._touch()

    def clear_cart(self):
        # pajak tetap, karena setting per sesi bukan per order
        self.lines = []
        self.discount = OrderDiscount()
        self._touch()

    @property
    def is_empty(self):
        return not self.lines

    #=========================== DISKON & PAJAK ===========================#

    def set_discount(self, discount_id, name, amount=0, percent=None, is_manual=False):
        self.discount = OrderDiscount(
            discount_id=discount_id,
            name=name,
            nominal_amount=max(0, amount or 0),
            percent=None if percent is None else max(0, percent),
            is_manual=is_manual,
        )
        self._touch()

    def set_tax_config(self, rate, included, label, enabled):
        self.tax = TaxConfig(rate=max(0, rate), included=included, label=label, enabled=enabled)
        self._touch()

    #=========================== PERHITUNGAN ===========================#

    @property
    def subtotal(self):
        return sum(line.line_total for line in self.lines)

    @property
    def discount_amount(self):
        if self.discount.percent is not None:
            return self.subtotal * self.discount.percent / 100
        return self.discount.nominal_amount

    @property
    def taxable_amount(self):
        return max(0, self.subtotal - self.discount_amount)

    @property
    def tax_amount(self):
        if not self.tax.active:
            return 0
        taxable = self.taxable_amount
        if self.tax.included:
            # ambil pajak yang sudah ada di dalam harga
            return taxable - taxable * 100 / (100 + self.tax.rate)
        return taxable * self.tax.rate / 100

    @property
    def total(self):
        if not self.tax.active or self.tax.included:
            return self.taxable_amount
        return self.taxable_amount + self.tax_amount

    def snapshot(self):
        return {
            "items": [
                {
                    "product_id": line.product_id,
                    "product_name": line.product_name,
                    "price": line.unit_price,
                    "quantity": line.quantity,
                    "discount_amount": line.item_discount,
                    "line_total": line.line_total,
                }
                for line in self.lines
            ],
            "discount": {
                "discount_id": self.discount.discount_id,
                "name": self.discount.name,
                "percent": self.discount.percent,
                "is_manual": self.discount.is_manual,
            },
            "tax": {
                "rate": self.tax.rate,
                "included": self.tax.included,
                "label": self.tax.label,
                "enabled": self.tax.enabled,
            },
            "subtotal": self.subtotal,
            "discount_amount": self.discount_amount,
            "taxable_amount": self.taxable_amount,
            "tax_amount": self.tax_amount,
            "total": self.total,
        }

    def _touch(self):
        self.version += 1

"""
Pemilihan diskon order: otomatis (promo) atau manual (dipilih kasir).

Diskon manual selalu menang. Selama kasir sudah memilih (termasuk memilih
"tanpa diskon"), promo otomatis tidak dijalankan sampai keranjang dikosongkan.
"""
import logging
from dataclasses import dataclass

from money import format_rupiah

logger = logging.getLogger(__name__)

NOMINAL = "NOMINAL"
PERCENT = "PERCENT"


class DiscountNotApplicableError(Exception):
    pass


@dataclass(frozen=True)
class DiscountDefinition:
    id: int
    name: str
    type: str
    value: float
    min_purchase: float = 0
    is_active: bool = True
    is_automatic: bool = False

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            name=data["name"],
            type=data["type"],
            value=data.get("value", 0),
            min_purchase=data.get("min_purchase") or 0,
            is_active=bool(data.get("is_active", True)),
            is_automatic=bool(data.get("is_automatic", False)),
        )


def discount_benefit(definition, subtotal):
    if definition.type == PERCENT:
        return subtotal * definition.value / 100
    return definition.value


def select_automatic_discount(definitions, subtotal):
    candidates = [
        d for d in definitions
        if d.is_active and d.is_automatic and subtotal >= d.min_purchase
    ]
    if not candidates:
        return None
    # max() mengambil yang pertama kalau nilainya sama
    return max(candidates, key=lambda d: discount_benefit(d, subtotal))


def _apply(cart, definition, is_manual):
    if definition.type == PERCENT:
        cart.set_discount(definition.id, definition.name, 0, definition.value, is_manual=is_manual)
    else:
        cart.set_discount(definition.id, definition.name, definition.value, None, is_manual=is_manual)


def apply_automatic_discount(cart, definitions):
    if cart.discount.is_manual:
        return cart.discount

    # keranjang kosong tidak dapat promo
    winner = select_automatic_discount(definitions, cart.subtotal) if cart.lines else None
    if winner is None:
        if not cart.discount.is_empty:
            logger.info("Diskon otomatis %s dilepas, syarat tidak terpenuhi", cart.discount.name)
            cart.set_discount(None, None, 0, None, is_manual=False)
        return cart.discount

    if cart.discount.discount_id != winner.id:
        logger.info("Diskon otomatis diterapkan: %s", winner.name)
        _apply(cart, winner, is_manual=False)
    return cart.discount


def apply_manual_discount(cart, definition):
    if not definition.is_active:
        raise DiscountNotApplicableError(f"Diskon {definition.name} tidak aktif")
    if cart.subtotal < definition.min_purchase:
        raise DiscountNotApplicableError(
            f"Pemesanan minimum untuk diskon ini adalah {format_rupiah(definition.min_purchase)}"
        )
    _apply(cart, definition, is_manual=True)
    return cart.discount


def clear_manual_discount(cart):
    # "tanpa diskon" juga pilihan manual, promo otomatis tidak boleh muncul lagi
    cart.set_discount(None, None, 0, None, is_manual=True)
    return cart.discount

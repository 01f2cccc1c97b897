from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
import re


def round_rupiah(value):
    """Bulatkan ke rupiah utuh (half up), IDR tidak punya sen."""
    try:
        return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError, TypeError):
        return 0


def format_rupiah(value):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return "Rp 0"
    if not amount.is_finite():
        return "Rp 0"
    rounded = round_rupiah(amount)
    text = "Rp {:,.0f}".format(abs(rounded)).replace(",", ".")
    return f"-{text}" if rounded < 0 else text


def format_percent(value):
    try:
        return "{:.0f}%".format(float(value))
    except (ValueError, TypeError):
        return "0%"


def parse_currency(text):
    # "Rp 150.000" -> 150000 ; titik adalah pemisah ribuan
    if isinstance(text, (int, float)):
        return text
    cleaned = re.sub(r"[^0-9,-]", "", str(text or "")).replace(",", ".")
    try:
        value = float(cleaned)
    except ValueError:
        return 0
    return int(value) if value.is_integer() else value

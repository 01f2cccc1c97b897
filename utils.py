from models import db, Setting
from flask import current_app, jsonify
from datetime import datetime
import pytz

DEFAULT_SETTINGS = {
    "tax.is_enabled": "0",
    "tax.rate": "11",
    "tax.label": "PPN",
    "tax.is_included": "0",
}


def seed_default_settings():
    """Isi setting default kalau belum ada (tidak menimpa yang sudah ada)."""
    for key, value in DEFAULT_SETTINGS.items():
        if db.session.get(Setting, key) is None:
            db.session.add(Setting(key=key, value=value))
    db.session.commit()


def get_settings_map():
    settings = dict(DEFAULT_SETTINGS)
    settings.update({s.key: s.value for s in db.session.query(Setting).all()})
    return settings


def get_tax_settings():
    settings = get_settings_map()
    try:
        rate = float(settings["tax.rate"])
    except ValueError:
        rate = 0.0
    return {
        "is_enabled": settings["tax.is_enabled"] == "1",
        "rate": rate,
        "label": settings["tax.label"],
        "is_included": settings["tax.is_included"] == "1",
    }


def local_now():
    # waktu toko (default Asia/Jakarta), disimpan tanpa tzinfo
    tz = pytz.timezone(current_app.config.get("TIMEZONE", "Asia/Jakarta"))
    return datetime.now(tz).replace(tzinfo=None)


def error_response(message, code=400):
    return jsonify({"status": "error", "message": message}), code

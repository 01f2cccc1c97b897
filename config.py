import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

# Client POS (terminal kasir)
POS_BACKEND_URL = os.environ.get("POS_BACKEND_URL", "http://127.0.0.1:5000")
QRIS_POLL_INTERVAL = float(os.environ.get("QRIS_POLL_INTERVAL", 3))
QRIS_ERROR_WARNING_THRESHOLD = 3
SCAN_DEBOUNCE_SECONDS = 0.05

class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "default_secret_key")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{os.path.join(BASE_DIR, 'kasir.db')}"
    )

    # Payment gateway QRIS (Midtrans)
    MIDTRANS_SERVER_KEY = os.environ.get("MIDTRANS_SERVER_KEY", "")
    MIDTRANS_BASE_URL = os.environ.get("MIDTRANS_BASE_URL", "https://api.sandbox.midtrans.com")
    MIDTRANS_TIMEOUT = 15
    QRIS_MIN_AMOUNT = 1500
    QRIS_EXPIRY_MINUTES = 15

    TIMEZONE = "Asia/Jakarta"

class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    MIDTRANS_SERVER_KEY = "SB-Mid-server-test"

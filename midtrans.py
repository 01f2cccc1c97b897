"""
Client Midtrans untuk pembayaran QRIS (charge, cek status, cancel).
"""
import logging
import uuid
from datetime import datetime, timedelta

import pytz
import requests

logger = logging.getLogger(__name__)


class MidtransError(Exception):
    """Error dari payment gateway (koneksi, HTTP, atau response tidak valid)."""
    pass


# Status Midtrans -> status internal
STATUS_MAP = {
    "settlement": "settlement",
    "capture": "settlement",
    "pending": "pending",
    "expire": "expire",
    "cancel": "cancel",
    "deny": "cancel",
}


class MidtransClient:

    def __init__(self, server_key, base_url="https://api.sandbox.midtrans.com", timeout=15,
                 min_amount=1500, expiry_minutes=15, tz="Asia/Jakarta"):
        self.server_key = server_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.min_amount = min_amount
        self.expiry_minutes = expiry_minutes
        self.tz = pytz.timezone(tz)

    @classmethod
    def from_config(cls, config):
        return cls(
            server_key=config.get("MIDTRANS_SERVER_KEY", ""),
            base_url=config.get("MIDTRANS_BASE_URL", "https://api.sandbox.midtrans.com"),
            timeout=config.get("MIDTRANS_TIMEOUT", 15),
            min_amount=config.get("QRIS_MIN_AMOUNT", 1500),
            expiry_minutes=config.get("QRIS_EXPIRY_MINUTES", 15),
            tz=config.get("TIMEZONE", "Asia/Jakarta"),
        )

    def _auth(self):
        if not self.server_key:
            raise MidtransError("Server key tidak ditemukan. Konfigurasi MIDTRANS_SERVER_KEY.")
        return (self.server_key, "")

    def new_order_id(self):
        now = datetime.now(pytz.utc).strftime("%Y%m%d%H%M%S")
        return f"QRIS-{now}-{uuid.uuid4().hex[:8]}"

    #=========================== CHARGE ===========================#

    def charge_qris(self, amount):
        """
        Generate QR QRIS.

        Returns:
            dict dengan qr_string, order_id, expires_at ("%Y-%m-%d %H:%M:%S", UTC+7)

        Raises:
            MidtransError: kalau nominal di bawah minimum atau gateway gagal
        """
        if amount < self.min_amount:
            raise MidtransError(f"Minimum pembayaran QRIS adalah Rp {self.min_amount:,}".replace(",", "."))

        order_id = self.new_order_id()
        payload = {
            "payment_type": "qris",
            "transaction_details": {
                "order_id": order_id,
                "gross_amount": int(round(amount)),
            },
        }

        try:
            response = requests.post(
                f"{self.base_url}/v2/charge", json=payload, auth=self._auth(), timeout=self.timeout
            )
        except requests.Timeout:
            raise MidtransError("Koneksi ke payment gateway timeout. Coba lagi.")
        except requests.RequestException as e:
            logger.error("Midtrans charge gagal: %s", e)
            raise MidtransError("Gagal menghubungi payment gateway")

        if not response.ok:
            logger.error("Midtrans HTTP error %s: %s", response.status_code, response.text)
            raise MidtransError(
                f"Payment gateway error (HTTP {response.status_code}). Pastikan fitur QRIS aktif di akun Midtrans."
            )

        try:
            data = response.json()
        except ValueError:
            raise MidtransError("Gagal memproses response dari Midtrans")

        status_code = str(data.get("status_code", ""))
        if status_code not in ("200", "201"):
            message = data.get("status_message") or "Unknown error"
            logger.error("Midtrans error %s: %s", status_code, message)
            raise MidtransError(f"Midtrans: {message} ({status_code})")

        qr_string = data.get("qr_string")
        if not qr_string:
            qr_string = next(
                (a.get("url") for a in data.get("actions") or [] if a.get("name") == "generate-qr-code"),
                None,
            )
        if not qr_string:
            raise MidtransError("QR string tidak ditemukan di response Payment Gateway")

        expires_at = data.get("expiry_time")
        if not expires_at:
            expires_at = (datetime.now(self.tz) + timedelta(minutes=self.expiry_minutes)).strftime("%Y-%m-%d %H:%M:%S")

        logger.info("QRIS dibuat: order_id=%s, amount=%s", order_id, amount)
        return {"qr_string": qr_string, "order_id": order_id, "expires_at": expires_at}

    #=========================== STATUS ===========================#

    def check_status(self, order_id):
        try:
            response = requests.get(
                f"{self.base_url}/v2/{order_id}/status", auth=self._auth(), timeout=self.timeout
            )
        except requests.RequestException as e:
            raise MidtransError(f"Gagal cek status: {e}")

        if not response.ok:
            raise MidtransError(f"API error {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            raise MidtransError("Response status tidak valid")

        transaction_status = data.get("transaction_status", "")
        return {
            "status": STATUS_MAP.get(transaction_status, transaction_status),
            "transaction_status": transaction_status,
            "order_id": data.get("order_id", order_id),
        }

    #=========================== CANCEL ===========================#

    def cancel(self, order_id):
        # abaikan error, mis. QR sudah expired duluan
        try:
            requests.post(f"{self.base_url}/v2/{order_id}/cancel", auth=self._auth(), timeout=self.timeout)
        except (requests.RequestException, MidtransError) as e:
            logger.warning("Cancel QRIS %s gagal (diabaikan): %s", order_id, e)

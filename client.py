"""
Client HTTP untuk command API backend kasir.

Dipakai oleh terminal POS; semua method blocking (requests) dan melempar
``CommandError`` kalau backend menolak atau tidak bisa dihubungi.
"""
import logging

import requests

from config import POS_BACKEND_URL

logger = logging.getLogger(__name__)


class CommandError(Exception):

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ProductNotFoundError(CommandError):
    pass


class CommandClient:

    def __init__(self, base_url=POS_BACKEND_URL, timeout=15, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("%s %s gagal: %s", method, path, e)
            raise CommandError(f"Gagal menghubungi server: {e}")

        if not response.ok:
            try:
                message = response.json().get("message")
            except ValueError:
                message = None
            raise CommandError(message or f"HTTP {response.status_code}", response.status_code)
        return response.json()

    #=========================== AUTH ===========================#

    def login(self, username, password):
        return self._request("POST", "/login", json={"username": username, "password": password})

    def logout(self):
        return self._request("POST", "/logout")

    #=========================== COMMANDS ===========================#

    def lookup_product_by_barcode(self, barcode):
        try:
            return self._request("GET", f"/api/products/barcode/{barcode}")
        except CommandError as e:
            if e.status_code == 404:
                raise ProductNotFoundError(str(e), 404)
            raise

    def list_discounts(self):
        return self._request("GET", "/api/discounts")

    def get_settings(self):
        return self._request("GET", "/api/settings")

    def generate_qris_payment(self, amount):
        return self._request("POST", "/api/qris/generate", json={"amount": amount})

    def check_qris_status(self, order_id):
        return self._request("GET", f"/api/qris/{order_id}/status")

    def cancel_qris_payment(self, order_id):
        try:
            self._request("POST", f"/api/qris/{order_id}/cancel")
        except CommandError as e:
            logger.warning("Cancel QRIS %s gagal (diabaikan): %s", order_id, e)

    def submit_transaction(self, payload):
        return self._request("POST", "/api/transactions", json=payload)

"""
Polling status pembayaran QRIS.

Alur status: idle -> pending -> success | expired | failed.

``QrisPoller`` memiliki state-nya sendiri dan mengirim ``QrisEvent`` ke para
subscriber setiap kali ada perubahan. Callback sukses hanya dipanggil sekali
per order_id, walaupun tick berikutnya masih membaca "settlement".

``QrisPaymentFlow`` membungkus poller dengan generate / regenerate / cancel
QR dan hitung mundur kadaluarsa lokal.
"""
import asyncio
import contextlib
import inspect
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

import pytz

from config import QRIS_POLL_INTERVAL, QRIS_ERROR_WARNING_THRESHOLD

logger = logging.getLogger(__name__)

# Midtrans mengembalikan waktu tanpa zona (UTC+7)
PROVIDER_TZ = pytz.timezone("Asia/Jakarta")


class QrisStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    EXPIRED = "expired"
    FAILED = "failed"

    @property
    def is_terminal(self):
        return self in (QrisStatus.SUCCESS, QrisStatus.EXPIRED, QrisStatus.FAILED)


def map_qris_status(status, transaction_status=None):
    """Status provider -> QrisStatus. None artinya masih pending / tidak dikenal."""
    if status in ("settlement", "capture") or transaction_status in ("settlement", "capture"):
        return QrisStatus.SUCCESS
    if status == "expire":
        return QrisStatus.EXPIRED
    if status in ("cancel", "deny"):
        return QrisStatus.FAILED
    return None


@dataclass(frozen=True)
class QrisEvent:
    kind: str  # status / success / expired / error / reset
    order_id: Optional[str]
    status: QrisStatus
    error_count: int = 0


@dataclass(frozen=True)
class QrisSession:
    order_id: Optional[str]
    status: QrisStatus
    expires_at: Optional[datetime]
    error_count: int


class QrisPoller:

    def __init__(self, check_status, interval=QRIS_POLL_INTERVAL, on_success=None,
                 on_expired=None, sleep=asyncio.sleep):
        self.check_status = check_status
        self.interval = interval
        self._sleep = sleep
        self.order_id = None
        self.enabled = True
        self.status = QrisStatus.IDLE
        self.error_count = 0
        self._success_order = None
        self._in_flight = False
        self._task = None
        self._listeners = []
        if on_success:
            self.subscribe(lambda e: on_success(e.order_id) if e.kind == "success" else None)
        if on_expired:
            self.subscribe(lambda e: on_expired(e.order_id) if e.kind == "expired" else None)

    def subscribe(self, listener):
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def connection_warning(self):
        return self.error_count >= QRIS_ERROR_WARNING_THRESHOLD

    @property
    def is_polling(self):
        return self._task is not None and not self._task.done()

    #=========================== LIFECYCLE ===========================#

    async def watch(self, order_id):
        if order_id and order_id == self.order_id:
            # order yang sama: lanjutkan saja, status sukses tidak di-reset
            self._start()
            return
        # order baru (atau None) = reset total
        await self._stop()
        self.order_id = order_id
        self.error_count = 0
        if not order_id:
            self.status = QrisStatus.IDLE
            self._emit("reset")
            return
        self.status = QrisStatus.PENDING
        self._success_order = None
        self._emit("status")
        self._start()

    async def reset(self):
        await self.watch(None)

    async def set_enabled(self, enabled):
        self.enabled = enabled
        if enabled:
            self._start()
        else:
            await self._stop()

    async def close(self):
        await self._stop()

    def _should_poll(self, order_id):
        return (
            self.enabled
            and order_id is not None
            and order_id == self.order_id
            and not self.status.is_terminal
        )

    def _start(self):
        if self.is_polling or not self._should_poll(self.order_id):
            return
        self._task = asyncio.get_running_loop().create_task(self._poll_loop(self.order_id))

    async def _stop(self):
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        if task is not asyncio.current_task():
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _poll_loop(self, order_id):
        # cek langsung, lalu tiap interval
        while self._should_poll(order_id):
            await self.refresh()
            if not self._should_poll(order_id):
                break
            await self._sleep(self.interval)

    #=========================== CHECK ===========================#

    async def refresh(self):
        order_id = self.order_id
        if not order_id or not self.enabled:
            return self.status
        if self._in_flight:
            logger.debug("Cek status QRIS %s masih berjalan, dilewati", order_id)
            return self.status

        self._in_flight = True
        try:
            result = await self._call(order_id)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if order_id == self.order_id:
                self.error_count += 1
                logger.warning("QRIS polling error (%s, ke-%d): %s", order_id, self.error_count, e)
                self._emit("error")
            return self.status
        finally:
            self._in_flight = False

        if order_id != self.order_id:
            # hasil untuk order lama, abaikan
            return self.status

        self.error_count = 0
        self._apply(order_id, result or {})
        return self.status

    async def _call(self, order_id):
        if inspect.iscoroutinefunction(self.check_status):
            return await self.check_status(order_id)
        return await asyncio.to_thread(self.check_status, order_id)

    def _apply(self, order_id, result):
        new_status = map_qris_status(result.get("status"), result.get("transaction_status"))
        if new_status is None:
            return

        if new_status is QrisStatus.SUCCESS:
            self.status = QrisStatus.SUCCESS
            if self._success_order != order_id:
                self._success_order = order_id
                logger.info("Pembayaran QRIS %s berhasil", order_id)
                self._emit("success")
        elif new_status is QrisStatus.EXPIRED:
            if self.status is not QrisStatus.EXPIRED:
                self.status = QrisStatus.EXPIRED
                logger.info("QRIS %s kadaluarsa", order_id)
                self._emit("expired")
        elif self.status is not new_status:
            self.status = new_status
            logger.info("QRIS %s dibatalkan/ditolak", order_id)
            self._emit("status")

    def _emit(self, kind):
        event = QrisEvent(kind, self.order_id, self.status, self.error_count)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener QRIS gagal untuk event %s", kind)


def parse_expires_at(value):
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).strip().replace(" ", "T"))
    if parsed.tzinfo is None:
        parsed = PROVIDER_TZ.localize(parsed)
    return parsed


def utc_now():
    return datetime.now(pytz.utc)


class QrisPaymentFlow:

    def __init__(self, api, poller=None, on_success=None, on_expired=None, now=utc_now,
                 sleep=asyncio.sleep):
        self.api = api
        self.poller = poller or QrisPoller(api.check_qris_status, sleep=sleep)
        self.on_success = on_success
        self.on_expired = on_expired
        self.now = now
        self._sleep = sleep
        self.payment = None
        self.amount = 0
        self.expires_at = None
        self._expired_orders = set()
        self._countdown = None
        self.poller.subscribe(self._on_event)

    @property
    def session(self):
        return QrisSession(
            order_id=self.poller.order_id,
            status=self.poller.status,
            expires_at=self.expires_at,
            error_count=self.poller.error_count,
        )

    async def start(self, amount):
        if amount <= 0:
            return None
        result = await asyncio.to_thread(self.api.generate_qris_payment, amount)
        self.payment = result
        self.amount = amount
        self.expires_at = parse_expires_at(result["expires_at"])
        await self.poller.watch(result["order_id"])
        self._start_countdown(result["order_id"])
        return result

    async def regenerate(self):
        amount = self.amount
        await self._cancel_at_provider()
        await self._reset()
        return await self.start(amount)

    async def cancel(self):
        await self._cancel_at_provider()
        await self._reset()

    async def close(self):
        await self._reset()

    def time_left(self):
        if self.expires_at is None:
            return 0
        return max(0.0, (self.expires_at - self.now()).total_seconds())

    #=========================== INTERNAL ===========================#

    async def _cancel_at_provider(self):
        order_id = self.poller.order_id
        if not order_id:
            return
        try:
            await asyncio.to_thread(self.api.cancel_qris_payment, order_id)
        except Exception as e:
            logger.warning("Gagal membatalkan QRIS %s: %s", order_id, e)

    async def _reset(self):
        self._stop_countdown()
        self.payment = None
        self.expires_at = None
        self._expired_orders.clear()
        await self.poller.reset()

    def _start_countdown(self, order_id):
        self._stop_countdown()
        self._countdown = asyncio.get_running_loop().create_task(self._run_countdown(order_id))

    def _stop_countdown(self):
        task, self._countdown = self._countdown, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run_countdown(self, order_id):
        remaining = self.time_left()
        if remaining > 0:
            await self._sleep(remaining)
        if self.poller.order_id == order_id and self.poller.status is QrisStatus.PENDING:
            # kadaluarsa versi lokal, polling tetap jalan
            self._notify_expired(order_id, "countdown")

    def _on_event(self, event):
        if event.kind == "success":
            self._stop_countdown()
            if self.on_success:
                self.on_success(event.order_id)
        elif event.kind == "expired":
            self._stop_countdown()
            self._notify_expired(event.order_id, "provider")
        elif event.kind == "status" and event.status is QrisStatus.FAILED:
            self._stop_countdown()

    def _notify_expired(self, order_id, source):
        if order_id in self._expired_orders:
            return
        self._expired_orders.add(order_id)
        logger.info("QRIS %s kadaluarsa (%s)", order_id, source)
        if self.on_expired:
            self.on_expired(order_id, source)

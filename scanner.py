"""
Penggabung ketikan scanner barcode.

Scanner mengirim karakter dengan sangat cepat lalu diakhiri Enter. Ketikan
manusia jauh lebih lambat, jadi buffer dibuang kalau jeda antar karakter
melewati batas debounce. Ketikan di dalam field input diabaikan.
"""
import logging
import time
from dataclasses import dataclass

from config import SCAN_DEBOUNCE_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyEvent:
    key: str
    in_text_field: bool = False


class BarcodeScanAggregator:

    def __init__(self, on_scan, debounce=SCAN_DEBOUNCE_SECONDS, clock=time.monotonic):
        self.on_scan = on_scan
        self.debounce = debounce
        self.clock = clock
        self.buffer = ""
        self.deadline = None
        self.closed = False

    def feed(self, event):
        if self.closed or event.in_text_field:
            return

        # timer debounce sudah lewat -> buffer dianggap sudah dibuang
        if self.deadline is not None and self.clock() > self.deadline:
            self._reset()

        if event.key == "Enter":
            if self.buffer:
                barcode = self.buffer
                self._reset()
                logger.debug("Barcode terbaca: %s", barcode)
                self.on_scan(barcode)
            return

        if len(event.key) == 1:
            self.buffer += event.key
            self.deadline = self.clock() + self.debounce

    def close(self):
        self._reset()
        self.closed = True

    def _reset(self):
        self.buffer = ""
        self.deadline = None


class BarcodeSource:
    """Sumber barcode; subscribe() mengembalikan fungsi unsubscribe."""

    def subscribe(self, on_scan):
        raise NotImplementedError


class KeyboardBarcodeSource(BarcodeSource):

    def __init__(self, debounce=SCAN_DEBOUNCE_SECONDS, clock=time.monotonic):
        self.debounce = debounce
        self.clock = clock
        self.aggregators = []

    def subscribe(self, on_scan):
        aggregator = BarcodeScanAggregator(on_scan, debounce=self.debounce, clock=self.clock)
        self.aggregators.append(aggregator)

        def unsubscribe():
            aggregator.close()
            if aggregator in self.aggregators:
                self.aggregators.remove(aggregator)

        return unsubscribe

    def key_down(self, key, in_text_field=False):
        event = KeyEvent(key, in_text_field)
        for aggregator in list(self.aggregators):
            aggregator.feed(event)

# Overview: Low/out-of-stock evaluation, alert delivery and the background alert worker.

"""
Stock alerts

- Evaluation is a pure decision on (stock, threshold), taken on post-mutation
  values: stock == 0 is OUT_OF_STOCK, 0 < stock <= threshold is LOW_STOCK.
  At most one alert per evaluation; out-of-stock wins.
- Delivery goes to the owning tenant's contact email. Failures are logged
  and swallowed: alerting never surfaces an error to the code that changed
  the stock.
- Checkout and stock edits enqueue StockSnapshot values on the dispatcher
  after their transaction commits. The worker thread only sees snapshots,
  never the database session.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass

from ..models import ProductVariant
from .email_templates import KIND_LOW_STOCK, KIND_OUT_OF_STOCK, render_email
from .notifier import Notifier, OutboundEmail


logger = logging.getLogger(__name__)

ALERT_LOW_STOCK = "LOW_STOCK"
ALERT_OUT_OF_STOCK = "OUT_OF_STOCK"

_TEMPLATE_BY_ALERT = {
    ALERT_LOW_STOCK: KIND_LOW_STOCK,
    ALERT_OUT_OF_STOCK: KIND_OUT_OF_STOCK,
}


def evaluate_stock(stock: int, threshold: int) -> str | None:
    """Return the alert kind for a stock level, or None when stock is healthy."""
    if stock == 0:
        return ALERT_OUT_OF_STOCK
    if 0 < stock <= threshold:
        return ALERT_LOW_STOCK
    return None


@dataclass(frozen=True)
class StockSnapshot:
    variant_id: int
    product_name: str
    variant_name: str
    barcode: str | None
    stock: int
    threshold: int
    tenant_name: str
    contact_email: str | None


def snapshot_variant(variant: ProductVariant, stock: int | None = None) -> StockSnapshot:
    """Capture what an alert needs while the variant's relationships are loaded."""
    tenant = variant.product.tenant
    return StockSnapshot(
        variant_id=variant.id,
        product_name=variant.product.name,
        variant_name=variant.display_name,
        barcode=variant.barcode,
        stock=variant.stock if stock is None else stock,
        threshold=variant.low_stock_threshold,
        tenant_name=tenant.business_name,
        contact_email=tenant.user.email if tenant.user else None,
    )


class StockAlertService:
    def __init__(self, notifier: Notifier, renderer=render_email):
        self.notifier = notifier
        self.renderer = renderer

    def process(self, snapshot: StockSnapshot) -> bool:
        """
        Evaluate one snapshot and send its alert. Returns True if an email went out.

        Never raises.
        """
        try:
            alert = evaluate_stock(snapshot.stock, snapshot.threshold)
            if alert is None:
                return False
            if not snapshot.contact_email:
                logger.warning("No contact email for tenant %s; %s alert for variant %s dropped",
                               snapshot.tenant_name, alert, snapshot.variant_id)
                return False

            rendered = self.renderer(_TEMPLATE_BY_ALERT[alert], {
                "product_name": snapshot.product_name,
                "variant_name": snapshot.variant_name,
                "current_stock": snapshot.stock,
                "threshold": snapshot.threshold,
                "barcode": snapshot.barcode,
                "tenant_name": snapshot.tenant_name,
            })
            result = self.notifier.send(OutboundEmail(
                to=snapshot.contact_email,
                subject=rendered.subject,
                html_body=rendered.html,
                text_body=rendered.text,
            ))
            if not result.success:
                logger.warning("%s alert for variant %s not delivered: %s",
                               alert, snapshot.variant_id, result.error)
                return False
            return True
        except Exception:
            logger.exception("Stock alert for variant %s failed", snapshot.variant_id)
            return False


class StockAlertDispatcher:
    """
    Bounded queue plus one worker thread for post-commit stock alerts.

    submit() never blocks the caller: when the queue is full, or the
    dispatcher is not running, the snapshot is dropped and logged.
    """

    _STOP = object()

    def __init__(self, service: StockAlertService, *, maxsize: int = 256, shutdown_timeout: float = 10.0):
        self.service = service
        self.shutdown_timeout = shutdown_timeout
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._thread = threading.Thread(target=self._run, name="stock-alerts", daemon=True)
            self._running = True
            self._thread.start()

    def submit(self, snapshot: StockSnapshot) -> bool:
        if not self._running:
            logger.warning("Stock alert dispatcher stopped; alert for variant %s dropped", snapshot.variant_id)
            return False
        try:
            self._queue.put_nowait(snapshot)
        except queue.Full:
            logger.warning("Stock alert queue full; alert for variant %s dropped", snapshot.variant_id)
            return False
        return True

    def join(self) -> None:
        """Block until every submitted snapshot has been processed."""
        self._queue.join()

    def shutdown(self, timeout: float | None = None) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
            thread = self._thread
        # Drain pending work, then stop the worker.
        self._queue.put(self._STOP)
        thread.join(self.shutdown_timeout if timeout is None else timeout)
        if thread.is_alive():
            logger.warning("Stock alert worker did not stop within timeout")

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is self._STOP:
                    return
                self.service.process(item)
            except Exception:
                logger.exception("Stock alert worker failed")
            finally:
                self._queue.task_done()

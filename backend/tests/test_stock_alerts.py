# Overview: Pytest coverage for stock alert evaluation, rendering and the background dispatcher.

import threading
from datetime import date, datetime

import pytest

from cubepos.services.email_templates import render_email
from cubepos.services.stock_alert_service import (
    ALERT_LOW_STOCK,
    ALERT_OUT_OF_STOCK,
    StockAlertDispatcher,
    StockAlertService,
    StockSnapshot,
    evaluate_stock,
)
from cubepos.time_utils import format_readable_date

from conftest import RecordingNotifier


def _snapshot(stock=2, threshold=5, contact_email="owner@acme.test", variant_id=1):
    return StockSnapshot(
        variant_id=variant_id,
        product_name="Tote Bag",
        variant_name="Red - M",
        barcode="1000000000001",
        stock=stock,
        threshold=threshold,
        tenant_name="Acme Crafts",
        contact_email=contact_email,
    )


class TestEvaluateStock:
    @pytest.mark.parametrize("stock,threshold,expected", [
        (0, 5, ALERT_OUT_OF_STOCK),
        (0, 0, ALERT_OUT_OF_STOCK),
        (1, 5, ALERT_LOW_STOCK),
        (5, 5, ALERT_LOW_STOCK),
        (6, 5, None),
        (3, 0, None),
    ])
    def test_decision(self, stock, threshold, expected):
        assert evaluate_stock(stock, threshold) == expected


class TestStockAlertService:
    def test_low_stock_email(self):
        notifier = RecordingNotifier()
        assert StockAlertService(notifier).process(_snapshot(stock=2)) is True

        [email] = notifier.sent
        assert email.to == "owner@acme.test"
        assert email.subject == "Low Stock Alert: Tote Bag - Red - M"
        assert "Current stock: 2 units" in email.text_body
        assert "Acme Crafts" in email.html_body

    def test_out_of_stock_email(self):
        notifier = RecordingNotifier()
        StockAlertService(notifier).process(_snapshot(stock=0))
        assert notifier.sent[0].subject == "OUT OF STOCK: Tote Bag - Red - M"

    def test_healthy_stock_sends_nothing(self):
        notifier = RecordingNotifier()
        assert StockAlertService(notifier).process(_snapshot(stock=50)) is False
        assert notifier.sent == []

    def test_missing_contact_is_dropped(self):
        notifier = RecordingNotifier()
        assert StockAlertService(notifier).process(_snapshot(contact_email=None)) is False
        assert notifier.sent == []

    def test_never_raises(self):
        def broken_renderer(kind, data):
            raise RuntimeError("renderer down")

        notifier = RecordingNotifier()
        assert StockAlertService(notifier, renderer=broken_renderer).process(_snapshot()) is False

    def test_delivery_failure_is_absorbed(self):
        notifier = RecordingNotifier()
        notifier.fail = True
        assert StockAlertService(notifier).process(_snapshot()) is False


class _BlockingService:
    """Holds the worker inside process() until released."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.processed = []

    def process(self, snapshot):
        self.entered.set()
        self.release.wait(timeout=10)
        self.processed.append(snapshot.variant_id)
        return True


class TestStockAlertDispatcher:
    def test_submit_and_join(self):
        notifier = RecordingNotifier()
        dispatcher = StockAlertDispatcher(StockAlertService(notifier), maxsize=8)
        dispatcher.start()
        try:
            assert dispatcher.submit(_snapshot(variant_id=1)) is True
            assert dispatcher.submit(_snapshot(stock=0, variant_id=2)) is True
            dispatcher.join()
            assert len(notifier.sent) == 2
        finally:
            dispatcher.shutdown()
        assert dispatcher.running is False

    def test_submit_before_start_is_dropped(self):
        dispatcher = StockAlertDispatcher(StockAlertService(RecordingNotifier()))
        assert dispatcher.submit(_snapshot()) is False

    def test_submit_after_shutdown_is_dropped(self):
        dispatcher = StockAlertDispatcher(StockAlertService(RecordingNotifier()))
        dispatcher.start()
        dispatcher.shutdown()
        assert dispatcher.submit(_snapshot()) is False

    def test_full_queue_drops_instead_of_blocking(self):
        service = _BlockingService()
        dispatcher = StockAlertDispatcher(service, maxsize=1)
        dispatcher.start()
        try:
            assert dispatcher.submit(_snapshot(variant_id=1)) is True
            assert service.entered.wait(timeout=5)
            assert dispatcher.submit(_snapshot(variant_id=2)) is True
            assert dispatcher.submit(_snapshot(variant_id=3)) is False
        finally:
            service.release.set()
            dispatcher.join()
            dispatcher.shutdown()
        assert service.processed == [1, 2]

    def test_shutdown_drains_pending_work(self):
        notifier = RecordingNotifier()
        dispatcher = StockAlertDispatcher(StockAlertService(notifier), maxsize=8)
        dispatcher.start()
        for n in range(3):
            dispatcher.submit(_snapshot(variant_id=n))
        dispatcher.shutdown(timeout=5)
        assert len(notifier.sent) == 3


class TestEmailRendering:
    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            render_email("reminder_weekly", {})

    def test_html_is_escaped_text_is_not(self):
        rendered = render_email("stock_low", {
            "product_name": "<b>Mugs</b>",
            "variant_name": "",
            "current_stock": 1,
            "threshold": 5,
            "barcode": None,
            "tenant_name": "Acme & Sons",
        })
        assert "&lt;b&gt;Mugs&lt;/b&gt;" in rendered.html
        assert "Acme &amp; Sons" in rendered.html
        assert "<b>Mugs</b>" in rendered.text
        assert rendered.subject == "Low Stock Alert: <b>Mugs</b>"
        assert "Variant: -" in rendered.text

    @pytest.mark.parametrize("day,expected", [
        (1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"),
        (12, "12th"), (13, "13th"), (21, "21st"), (22, "22nd"), (23, "23rd"), (30, "30th"),
    ])
    def test_readable_date_suffix(self, day, expected):
        assert format_readable_date(date(2025, 9, day)).startswith(expected + " September")

    def test_readable_date_full(self):
        assert format_readable_date(datetime(2025, 9, 9, 18, 30)) == "9th September 2025"

"""Shared pytest fixtures for invoice composer tests."""

import io
import threading
from datetime import date, datetime, timedelta, timezone

import pytest
from PIL import Image

from config import CONFIG_ENV_VAR, ConfigurationManager
from invoice_composer.models import Discount, DiscountType, InvoiceData, InvoiceItem
from invoice_composer.session.clock import Clock, TimerHandle
from invoice_composer.storage import MemoryStore


class FakeTimer(TimerHandle):
    """Timer driven by FakeClock.advance."""

    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeClock(Clock):
    """Manually advanced clock; callbacks run inside advance()."""

    def __init__(self, start=None):
        self.current = start or datetime(2026, 1, 21, 14, 30, tzinfo=timezone.utc)
        self.timers = []

    def now(self):
        return self.current

    def call_later(self, delay, callback):
        timer = FakeTimer(self.current + timedelta(seconds=delay), callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds):
        self.current += timedelta(seconds=seconds)
        while True:
            due = [t for t in self.pending if t.due <= self.current]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            timer.fired = True
            timer.callback()


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Load the bundled settings.yaml for every test."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()


@pytest.fixture
def clock():
    """A FakeClock starting at 2026-01-21 14:30 UTC."""
    return FakeClock()


@pytest.fixture
def local_store():
    """Persistent-role backend (in memory for tests)."""
    return MemoryStore()


@pytest.fixture
def session_backend():
    """Ephemeral-role backend."""
    return MemoryStore()


class BlockingStore(MemoryStore):
    """MemoryStore whose writes wait until released."""

    def __init__(self):
        super().__init__()
        self.entered = threading.Event()
        self.release = threading.Event()

    def set(self, key, value):
        self.entered.set()
        assert self.release.wait(5)
        super().set(key, value)


@pytest.fixture
def blocking_backend():
    """Ephemeral-role backend that holds every write until released."""
    backend = BlockingStore()
    yield backend
    backend.release.set()


@pytest.fixture
def invoice():
    """Two items of 50, 10% discount, 10% tax: total 99."""
    return InvoiceData(
        invoice_number="INV-042",
        invoice_date="2026-01-21",
        due_date="2026-02-20",
        company_name="Acme Studio",
        company_email="billing@acme.test",
        brand_color="#3b82f6",
        client_name="Globex",
        client_email="ap@globex.test",
        items=[
            InvoiceItem(id="a", description="Design", quantity=1, unit_price=50),
            InvoiceItem(id="b", description="Review", quantity=1, unit_price=50),
        ],
        currency="USD",
        tax_rate=10,
        discount=Discount(DiscountType.PERCENTAGE, 10),
        payment_methods=["Bank Transfer"],
        notes="Thanks!",
    )


@pytest.fixture
def default_invoice():
    return InvoiceData.default(date(2026, 1, 21))


def make_png(width, height, color=(255, 0, 0, 255), mode="RGBA"):
    """Encode a solid-color image as PNG bytes."""
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    """A 600x200 opaque red PNG."""
    return make_png(600, 200)


@pytest.fixture
def png_factory():
    """Build PNG bytes of a given size and color."""
    return make_png

"""Shared fixtures for the bidding tests."""

from datetime import UTC, datetime, timedelta

import pytest
from bidding.order.creation import CreateOrder
from bidding.quote.submission import SubmitQuote
from bidding.utils import clock
from protean import current_domain


class FrozenClock:
    """Stand-in for ``clock.utc_now`` that only moves when told to."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture()
def frozen_clock(monkeypatch):
    fake = FrozenClock(datetime(2025, 1, 1, tzinfo=UTC))
    monkeypatch.setattr(clock, "utc_now", fake)
    return fake


@pytest.fixture()
def make_order():
    def _create(**overrides):
        payload = {
            "owner_id": "owner-1",
            "warehouse": "Shenzhen WH-3",
            "goods": "240 cartons of ceramic tiles",
            "delivery_address": "12 Harbour Road, Rotterdam",
        }
        payload.update(overrides)
        return current_domain.process(CreateOrder(**payload), asynchronous=False)

    return _create


@pytest.fixture()
def make_quote():
    def _submit(order_id, provider="acme-freight", price=100.0, **overrides):
        payload = {
            "order_id": order_id,
            "provider": provider,
            "price": price,
            "estimated_delivery": clock.utc_now() + timedelta(days=3),
        }
        payload.update(overrides)
        return current_domain.process(SubmitQuote(**payload), asynchronous=False)

    return _submit

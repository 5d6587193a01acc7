"""Shared BDD fixtures and step definitions for bidding scenarios."""

from datetime import UTC, datetime

import pytest
from bidding.errors import OrderAccessDenied, OrderAlreadyClosed
from bidding.order.closing import CloseOrder, SelectProvider
from bidding.order.creation import CreateOrder
from bidding.order.order import Order, OrderStatus
from bidding.quote.aggregation import get_lowest_quote, get_quotes_for_order
from bidding.quote.quote import Quote
from bidding.quote.submission import SubmitQuote
from bidding.utils import clock
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def error():
    """Container for the exception raised by the last When step."""
    return {"exc": None}


def _at(frozen_clock, timestamp):
    frozen_clock.now = datetime.fromisoformat(timestamp).astimezone(UTC)


def _quote(order, provider, price):
    return current_domain.process(
        SubmitQuote(
            order_id=order.id,
            provider=provider,
            price=price,
            estimated_delivery=datetime(2025, 2, 1, tzinfo=UTC),
        ),
        asynchronous=False,
    )


def _current(order):
    return current_domain.repository_for(Order).get(order.id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an active order posted by "{owner_id}"'), target_fixture="order")
def active_order(owner_id, frozen_clock):
    frozen_clock.now = datetime(2024, 12, 31, 12, 0, tzinfo=UTC)
    return current_domain.process(
        CreateOrder(
            owner_id=owner_id,
            warehouse="Shenzhen WH-3",
            goods="240 cartons of ceramic tiles",
            delivery_address="12 Harbour Road, Rotterdam",
        ),
        asynchronous=False,
    )


@given(parsers.cfparse('provider "{provider}" quotes {price:g} at "{timestamp}"'))
def provider_quoted(order, provider, price, timestamp, frozen_clock):
    _at(frozen_clock, timestamp)
    _quote(order, provider, price)


@given(parsers.cfparse('"{owner_id}" selects provider "{provider}" at {price:g}'))
def owner_selected(order, owner_id, provider, price):
    current_domain.process(
        SelectProvider(order_id=order.id, owner_id=owner_id, provider=provider, price=price),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('provider "{provider}" quotes {price:g} at "{timestamp}"'))
def provider_quotes(order, provider, price, timestamp, frozen_clock, error):
    _at(frozen_clock, timestamp)
    try:
        _quote(order, provider, price)
    except (ValidationError, OrderAlreadyClosed) as exc:
        error["exc"] = exc


@when(parsers.cfparse('"{owner_id}" selects provider "{provider}" at {price:g}'))
def owner_selects(order, owner_id, provider, price, error):
    try:
        current_domain.process(
            SelectProvider(order_id=order.id, owner_id=owner_id, provider=provider, price=price),
            asynchronous=False,
        )
    except (ValidationError, OrderAccessDenied, OrderAlreadyClosed) as exc:
        error["exc"] = exc


@when(parsers.cfparse('"{owner_id}" closes the order'))
def owner_closes(order, owner_id, error):
    try:
        current_domain.process(CloseOrder(order_id=order.id, owner_id=owner_id), asynchronous=False)
    except (OrderAccessDenied, OrderAlreadyClosed) as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the lowest quote is from provider "{provider}"'))
def lowest_quote_from(order, provider):
    assert get_lowest_quote(order.id).provider == provider


@then("the order is closed")
def order_is_closed(order):
    assert _current(order).status == OrderStatus.CLOSED.value


@then("the order is active")
def order_is_active(order):
    assert _current(order).status == OrderStatus.ACTIVE.value


@then(parsers.cfparse('the selected provider is "{provider}" at {price:g}'))
def selected_provider_is(order, provider, price):
    stored = _current(order)
    assert stored.selected_provider == provider
    assert stored.selected_price == price


@then("no provider is selected")
def no_provider_selected(order):
    stored = _current(order)
    assert stored.selected_provider is None
    assert stored.selected_price is None


@then("the submission fails because the order is closed")
def submission_failed_closed(error):
    assert isinstance(error["exc"], OrderAlreadyClosed)


@then("the request is denied")
def request_denied(error):
    assert isinstance(error["exc"], OrderAccessDenied)


@then("the request is rejected as invalid")
def request_invalid(error):
    assert isinstance(error["exc"], ValidationError)


@then("the quote is rejected as invalid")
def quote_invalid(error):
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse('provider "{provider}" has no quote on the order'))
def provider_has_no_quote(order, provider):
    assert current_domain.repository_for(Quote).find_for(order.id, provider) is None


@then(parsers.re(r"the order has (?P<count>\d+) quotes?"))
def order_has_quotes(order, count):
    assert len(get_quotes_for_order(order.id)) == int(count)


@then(parsers.cfparse('provider "{provider}" quotes {price:g} on the order'))
def provider_quote_price(order, provider, price):
    assert current_domain.repository_for(Quote).find_for(order.id, provider).price == price


@then(parsers.cfparse('provider "{provider}"\'s quote was created at "{timestamp}"'))
def provider_quote_created_at(order, provider, timestamp):
    quote = current_domain.repository_for(Quote).find_for(order.id, provider)
    assert clock.as_utc(quote.created_at) == datetime.fromisoformat(timestamp)


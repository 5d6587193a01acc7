"""Read side for orders: detail view and paginated listings.

Listings annotate each order with its lowest quote. The lowest quotes for a
whole page come from one batch lookup, never one lookup per order.
"""

from dataclasses import dataclass, field

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from bidding.order.order import Order, OrderStatus
from bidding.quote.aggregation import get_lowest_quotes_batch, lowest_of, rank
from bidding.quote.quote import Quote
from bidding.utils.pagination import Page, page_window

MIN_SEARCH_TERM_LENGTH = 2


@dataclass(frozen=True)
class OrderDetail:
    order: Order
    quotes: list = field(default_factory=list)

    @property
    def lowest_quote(self) -> Quote | None:
        return lowest_of(self.quotes)


@dataclass(frozen=True)
class OrderSummary:
    order: Order
    lowest_quote: Quote | None = None
    my_quote: Quote | None = None


@dataclass(frozen=True)
class OrderStats:
    total: int
    active: int
    closed: int


def get_order(order_id, owner_id=None) -> OrderDetail:
    """An order with its quotes, best first.

    With ``owner_id`` the caller must own the order.
    """
    order = current_domain.repository_for(Order).load(order_id)
    if owner_id is not None:
        order.ensure_owned_by(owner_id)
    return OrderDetail(order=order, quotes=rank(current_domain.repository_for(Quote).for_order(order.id)))


def _status_filter(status):
    if status is None:
        return None
    try:
        return OrderStatus(status).value
    except ValueError as exc:
        raise ValidationError({"status": [f"Unknown order status `{status}`"]}) from exc


def _summarize(result, page, page_size) -> Page:
    orders = list(result.items)
    lowest = get_lowest_quotes_batch([order.id for order in orders])
    return Page(
        items=[OrderSummary(order=order, lowest_quote=lowest[str(order.id)]) for order in orders],
        total=result.total,
        page=page,
        page_size=page_size,
    )


def list_owner_orders(owner_id, status=None, page=1, page_size=20) -> Page:
    """An owner's orders, newest first, optionally filtered by status."""
    status = _status_filter(status)
    offset, limit = page_window(page, page_size)

    result = current_domain.repository_for(Order).for_owner(owner_id, status=status, offset=offset, limit=limit)
    return _summarize(result, page, page_size)


def search_owner_orders(owner_id, term, status=None, page=1, page_size=20) -> Page:
    """An owner's orders whose warehouse, goods or delivery address contain ``term``.

    Matching ignores case. ``term`` is trimmed and must keep at least
    ``MIN_SEARCH_TERM_LENGTH`` characters.
    """
    term = (term or "").strip()
    if len(term) < MIN_SEARCH_TERM_LENGTH:
        raise ValidationError({"term": [f"must be at least {MIN_SEARCH_TERM_LENGTH} characters"]})
    status = _status_filter(status)
    offset, limit = page_window(page, page_size)

    result = current_domain.repository_for(Order).search_for_owner(
        owner_id, term, status=status, offset=offset, limit=limit
    )
    return _summarize(result, page, page_size)


def get_owner_order_stats(owner_id) -> OrderStats:
    """How many of ``owner_id``'s orders are in each status."""
    repo = current_domain.repository_for(Order)
    active = repo.count_for_owner(owner_id, OrderStatus.ACTIVE.value)
    closed = repo.count_for_owner(owner_id, OrderStatus.CLOSED.value)
    return OrderStats(total=active + closed, active=active, closed=closed)


def list_open_orders(provider=None, page=1, page_size=20) -> Page:
    """Active orders, newest first, as providers browse them.

    With ``provider`` each summary also carries that provider's own quote.
    """
    offset, limit = page_window(page, page_size)

    result = current_domain.repository_for(Order).open_orders(offset=offset, limit=limit)
    orders = list(result.items)
    lowest = get_lowest_quotes_batch([order.id for order in orders])

    mine = {}
    if provider:
        for quote in current_domain.repository_for(Quote).by_provider_on(provider.strip(), list(lowest)):
            mine[str(quote.order_id)] = quote

    summaries = [
        OrderSummary(order=order, lowest_quote=lowest[str(order.id)], my_quote=mine.get(str(order.id)))
        for order in orders
    ]
    return Page(items=summaries, total=result.total, page=page, page_size=page_size)

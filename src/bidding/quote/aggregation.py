"""Read side for quotes: ranking, lowest-quote aggregation and statistics.

The single and batch lowest-quote lookups share ``Quote.rank_key``, so for
any order the batch result is the same quote the single lookup returns:
lowest price first, then the earlier ``created_at``, then the smaller
provider name.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from bidding.errors import OrderNotFound
from bidding.order.order import Order
from bidding.quote.quote import Quote, normalize_price
from bidding.utils.pagination import Page, page_window

logger = structlog.get_logger(__name__)

MAX_BATCH_ORDERS = 100


@dataclass(frozen=True)
class QuoteStats:
    count: int
    lowest: float | None
    highest: float | None
    average: float | None


def _quotes():
    return current_domain.repository_for(Quote)


def _require_order(order_id):
    if not current_domain.repository_for(Order).exists(order_id):
        raise OrderNotFound.for_id(order_id)


def rank(quotes):
    return sorted(quotes, key=lambda quote: quote.rank_key)


def lowest_of(quotes):
    return min(quotes, key=lambda quote: quote.rank_key, default=None)


# ---------------------------------------------------------------------------
# Lowest-quote aggregation
# ---------------------------------------------------------------------------
def get_lowest_quote(order_id) -> Quote | None:
    return lowest_of(_quotes().for_order(order_id))


def get_lowest_quotes_batch(order_ids) -> dict[str, Quote | None]:
    """Lowest quote of each order in ``order_ids``, from one bulk read for all of them.

    Every requested id appears in the result; orders without quotes map to
    ``None``. Duplicate ids are collapsed.
    """
    wanted = list(dict.fromkeys(str(order_id) for order_id in order_ids))
    if len(wanted) > MAX_BATCH_ORDERS:
        raise ValidationError({"order_ids": [f"At most {MAX_BATCH_ORDERS} orders can be looked up at once"]})

    lowest = dict.fromkeys(wanted)
    for quote in _quotes().for_orders(wanted):
        key = str(quote.order_id)
        current = lowest.get(key)
        if current is None or quote.rank_key < current.rank_key:
            lowest[key] = quote

    logger.debug("lowest_quotes_batch", orders=len(wanted), priced=sum(q is not None for q in lowest.values()))
    return lowest


# ---------------------------------------------------------------------------
# Quote listings
# ---------------------------------------------------------------------------
def get_quotes_for_order(order_id) -> list[Quote]:
    """All quotes on an order, open or closed, best first."""
    _require_order(order_id)
    return rank(_quotes().for_order(order_id))


def get_quote(quote_id) -> Quote:
    return _quotes().load(quote_id)


def get_quotes_in_price_range(order_id, min_price=None, max_price=None) -> list[Quote]:
    if min_price is not None:
        min_price = normalize_price(min_price)
    if max_price is not None:
        max_price = normalize_price(max_price)
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationError({"min_price": ["must not exceed max_price"]})

    _require_order(order_id)
    return [
        quote
        for quote in rank(_quotes().for_order(order_id))
        if (min_price is None or quote.price >= min_price) and (max_price is None or quote.price <= max_price)
    ]


def get_quote_stats(order_id) -> QuoteStats:
    _require_order(order_id)
    prices = [quote.price for quote in _quotes().for_order(order_id)]
    if not prices:
        return QuoteStats(count=0, lowest=None, highest=None, average=None)
    return QuoteStats(
        count=len(prices),
        lowest=min(prices),
        highest=max(prices),
        average=round(sum(prices) / len(prices), 2),
    )


def get_provider_quotes(provider, page=1, page_size=20) -> Page:
    """A provider's quote history, most recently updated first."""
    offset, limit = page_window(page, page_size)
    result = _quotes().by_provider(provider.strip(), offset=offset, limit=limit)
    return Page(items=list(result.items), total=result.total, page=page, page_size=page_size)

"""Closing an order: manual close and close-via-selection.

Both paths end in the same conditional write, so when a close and a
selection race on one order exactly one of them lands. The loser sees
``ConcurrentModificationConflict`` (or ``OrderAlreadyClosed`` if it loaded
the order after the winner committed).
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from bidding.domain import bidding
from bidding.errors import QuoteNotFound
from bidding.order.order import Order
from bidding.quote.quote import Quote, normalize_price
from bidding.utils import clock
from bidding.utils.logging import bound_context

logger = structlog.get_logger(__name__)


@bidding.command(part_of="Order")
class CloseOrder:
    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    deadline = DateTime()


@bidding.command(part_of="Order")
class SelectProvider:
    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    provider = String(required=True, max_length=100)
    price = Float(required=True)
    deadline = DateTime()


@bidding.command_handler(part_of=Order)
class OrderClosingHandler:
    @handle(CloseOrder)
    def close_order(self, command):
        with bound_context(order_id=command.order_id, owner_id=command.owner_id):
            clock.check_deadline(command.deadline, "close_order")

            repo = current_domain.repository_for(Order)
            order = repo.load(command.order_id)
            order.ensure_owned_by(command.owner_id)
            order.close()

            clock.check_deadline(command.deadline, "close_order")
            repo.commit_if_unchanged(order)

            logger.info("order_closed")
            return order

    @handle(SelectProvider)
    def select_provider(self, command):
        with bound_context(order_id=command.order_id, owner_id=command.owner_id):
            clock.check_deadline(command.deadline, "select_provider")

            repo = current_domain.repository_for(Order)
            order = repo.load(command.order_id)
            order.ensure_owned_by(command.owner_id)
            order.ensure_active()

            provider = command.provider.strip()
            quote = current_domain.repository_for(Quote).find_for(order.id, provider)
            if quote is None:
                raise QuoteNotFound.for_provider(order.id, provider)

            price = normalize_price(command.price)
            if price != quote.price:
                raise ValidationError(
                    {"price": [f"Price {price:.2f} does not match the {quote.price:.2f} quoted by `{provider}`"]}
                )

            order.select(provider, quote.price)

            clock.check_deadline(command.deadline, "select_provider")
            # A quote accepted after the order was read may have changed this price
            repo.commit_if_unchanged(order, quotes_unchanged=True)

            logger.info("provider_selected", provider=provider, price=quote.price)
            return order

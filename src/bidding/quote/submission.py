"""SubmitQuote: a provider submits or revises its quote on an order.

The order's status is checked with a conditional write on the order row in
the same unit of work as the quote write. If the order is no longer active
when that write runs, the submission fails with ``OrderAlreadyClosed`` and no
quote is created or changed.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from bidding.domain import bidding
from bidding.errors import OrderAlreadyClosed
from bidding.order.order import Order
from bidding.quote.quote import Quote, clean_provider, validate_terms
from bidding.utils import clock
from bidding.utils.logging import bound_context

logger = structlog.get_logger(__name__)


@bidding.command(part_of="Quote")
class SubmitQuote:
    order_id = Identifier(required=True)
    provider = String(required=True, max_length=255)
    price = Float(required=True)
    estimated_delivery = DateTime(required=True)
    remarks = String(max_length=1000)
    deadline = DateTime()


@bidding.command_handler(part_of=Quote)
class SubmitQuoteHandler:
    @handle(SubmitQuote)
    def submit_quote(self, command):
        provider = clean_provider(command.provider)

        with bound_context(order_id=command.order_id, provider=provider):
            # Reject bad terms before touching storage
            validate_terms(command.price, command.estimated_delivery, command.remarks, clock.utc_now())
            clock.check_deadline(command.deadline, "submit_quote")

            try:
                current_domain.repository_for(Order).claim_for_quote(command.order_id, clock.utc_now())
            except OrderAlreadyClosed:
                logger.info("late_quote_rejected")
                raise

            repo = current_domain.repository_for(Quote)
            quote = repo.find_for(command.order_id, provider)
            if quote is None:
                quote = Quote.submit(
                    order_id=command.order_id,
                    provider=provider,
                    price=command.price,
                    estimated_delivery=command.estimated_delivery,
                    remarks=command.remarks,
                )
                event = "quote_submitted"
            else:
                quote.revise(
                    price=command.price,
                    estimated_delivery=command.estimated_delivery,
                    remarks=command.remarks,
                )
                event = "quote_revised"

            clock.check_deadline(command.deadline, "submit_quote")
            repo.add(quote)

            logger.info(event, quote_id=quote.id, price=quote.price)
            return quote

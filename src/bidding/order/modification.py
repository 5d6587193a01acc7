"""Editing an active order's shipment details."""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from bidding.domain import bidding
from bidding.order.order import Order
from bidding.utils import clock
from bidding.utils.logging import bound_context

logger = structlog.get_logger(__name__)


@bidding.command(part_of="Order")
class UpdateOrder:
    order_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    warehouse = String(max_length=255)
    goods = String(max_length=1000)
    delivery_address = String(max_length=255)
    deadline = DateTime()


@bidding.command_handler(part_of=Order)
class UpdateOrderHandler:
    @handle(UpdateOrder)
    def update_order(self, command):
        with bound_context(order_id=command.order_id, owner_id=command.owner_id):
            clock.check_deadline(command.deadline, "update_order")

            repo = current_domain.repository_for(Order)
            order = repo.load(command.order_id)
            order.ensure_owned_by(command.owner_id)
            order.revise(
                warehouse=command.warehouse,
                goods=command.goods,
                delivery_address=command.delivery_address,
            )

            clock.check_deadline(command.deadline, "update_order")
            repo.commit_if_unchanged(order)

            logger.info("order_updated", revision=order.revision)
            return order

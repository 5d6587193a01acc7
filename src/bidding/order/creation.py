"""Order creation: command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from bidding.domain import bidding
from bidding.order.order import Order
from bidding.utils.logging import bound_context

logger = structlog.get_logger(__name__)


@bidding.command(part_of="Order")
class CreateOrder:
    owner_id = Identifier(required=True)
    warehouse = String(required=True, max_length=255)
    goods = String(required=True, max_length=1000)
    delivery_address = String(required=True, max_length=255)


@bidding.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        with bound_context(owner_id=command.owner_id):
            order = Order.create(
                owner_id=command.owner_id,
                warehouse=command.warehouse,
                goods=command.goods,
                delivery_address=command.delivery_address,
            )
            current_domain.repository_for(Order).add(order)

            logger.info("order_created", order_id=order.id)
            return order

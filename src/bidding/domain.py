"""Composition root for the bidding bounded context.

Logging is configured before the domain is created so that Protean's own
loggers pick up the same handlers.
"""

from protean.domain import Domain

from bidding.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

bidding = Domain(name="bidding")

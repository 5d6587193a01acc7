"""Quote repository: point lookups and bulk reads.

Every multi-row read passes an explicit limit. Bulk reads used by the
lowest-quote aggregation page through the full match set in id order,
``SCAN_LIMIT`` rows at a time, so aggregates never see a partial set.
"""

import structlog
from protean.exceptions import ObjectNotFoundError

from bidding.domain import bidding
from bidding.errors import QuoteNotFound
from bidding.quote.quote import Quote, quote_identity

logger = structlog.get_logger(__name__)

SCAN_LIMIT = 10_000


@bidding.repository(part_of=Quote)
class QuoteRepository:
    def load(self, quote_id) -> Quote:
        try:
            return self.get(quote_id)
        except ObjectNotFoundError as exc:
            raise QuoteNotFound.for_id(quote_id) from exc

    def find_for(self, order_id, provider) -> Quote | None:
        """``provider``'s quote on ``order_id``, if there is one."""
        try:
            return self.get(quote_identity(order_id, provider))
        except ObjectNotFoundError:
            return None

    def for_order(self, order_id) -> list[Quote]:
        return self._scan(order_id=str(order_id))

    def for_orders(self, order_ids) -> list[Quote]:
        """All quotes of all ``order_ids`` in one read."""
        if not order_ids:
            return []
        return self._scan(order_id__in=[str(order_id) for order_id in order_ids])

    def by_provider_on(self, provider, order_ids) -> list[Quote]:
        """``provider``'s quotes among ``order_ids``, in one read."""
        if not order_ids:
            return []
        return self._scan(provider=provider, order_id__in=[str(order_id) for order_id in order_ids])

    def by_provider(self, provider, offset=0, limit=20):
        """A page of ``provider``'s quotes, most recently updated first."""
        return self._dao.query.filter(provider=provider).order_by("-updated_at").offset(offset).limit(limit).all()

    def _scan(self, **criteria) -> list[Quote]:
        query = self._dao.query.filter(**criteria).order_by("id")
        quotes = []
        while True:
            result = query.offset(len(quotes)).limit(SCAN_LIMIT).all()
            quotes.extend(result.items)
            if not result.items or len(quotes) >= result.total:
                break
            logger.debug("quote_scan_page", fetched=len(quotes), total=result.total)
        return quotes

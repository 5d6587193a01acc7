"""Order repository: conditional writes and listing queries.

Owner-side changes are never written with ``repo.add``. They go through
:meth:`OrderRepository.commit_if_unchanged`, which issues a single
``UPDATE ... WHERE id = ? AND status = 'active' AND revision = ?`` and checks
that exactly one row matched. Selections also match on ``quote_token``, which
every accepted quote replaces.
"""

from uuid import uuid4

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.query import Q

from bidding.domain import bidding
from bidding.errors import ConcurrentModificationConflict, OrderAlreadyClosed, OrderNotFound
from bidding.order.order import OWNER_WRITABLE_FIELDS, Order, OrderStatus

logger = structlog.get_logger(__name__)


@bidding.repository(part_of=Order)
class OrderRepository:
    def load(self, order_id) -> Order:
        """Fetch an order, raising ``OrderNotFound`` for unknown ids."""
        try:
            return self.get(order_id)
        except ObjectNotFoundError as exc:
            raise OrderNotFound.for_id(order_id) from exc

    def exists(self, order_id) -> bool:
        return self._dao.query.filter(id=order_id).limit(1).all().total > 0

    def commit_if_unchanged(self, order: Order, quotes_unchanged=False) -> None:
        """Persist an owner-side change made to ``order`` since it was loaded.

        The write only lands if the stored row is still active and still at
        the revision ``order`` was loaded with. With ``quotes_unchanged`` it
        also requires that no quote was accepted on the order since then.
        Otherwise ``ConcurrentModificationConflict`` is raised; nothing is
        retried.
        """
        expected = order.revision
        values = {name: getattr(order, name) for name in OWNER_WRITABLE_FIELDS}
        values["revision"] = expected + 1

        criteria = Q(id=order.id, status=OrderStatus.ACTIVE.value, revision=expected)
        if quotes_unchanged:
            criteria = criteria & Q(quote_token=order.quote_token)

        matched = self._dao._update_all(criteria, **values)

        if matched != 1:
            logger.warning(
                "order_write_conflict",
                order_id=order.id,
                expected_revision=expected,
                matched=matched,
            )
            raise ConcurrentModificationConflict.for_id(order.id)

        order.revision = expected + 1

    def claim_for_quote(self, order_id, at) -> None:
        """Stamp ``last_quote_at`` and a new ``quote_token`` on an order that is still active.

        Runs inside the quote submission's unit of work, so the quote write
        and this status check commit together.
        """
        matched = self._dao._update_all(
            Q(id=order_id, status=OrderStatus.ACTIVE.value),
            last_quote_at=at,
            quote_token=uuid4().hex,
        )

        if matched == 1:
            return
        if not self.exists(order_id):
            raise OrderNotFound.for_id(order_id)
        raise OrderAlreadyClosed.for_id(order_id)

    # -------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------
    def for_owner(self, owner_id, status=None, offset=0, limit=20):
        """A page of ``owner_id``'s orders, newest first, as a ``ResultSet``."""
        criteria = {"owner_id": str(owner_id)}
        if status is not None:
            criteria["status"] = status
        return self._dao.query.filter(**criteria).order_by("-created_at").offset(offset).limit(limit).all()

    def open_orders(self, offset=0, limit=20):
        return (
            self._dao.query.filter(status=OrderStatus.ACTIVE.value)
            .order_by("-created_at")
            .offset(offset)
            .limit(limit)
            .all()
        )

    def search_for_owner(self, owner_id, term, status=None, offset=0, limit=20):
        """``owner_id``'s orders whose warehouse, goods or address contain ``term``."""
        matches = Q(warehouse__icontains=term) | Q(goods__icontains=term) | Q(delivery_address__icontains=term)
        query = self._dao.query.filter(owner_id=str(owner_id)).filter(matches)
        if status is not None:
            query = query.filter(status=status)
        return query.order_by("-created_at").offset(offset).limit(limit).all()

    def count_for_owner(self, owner_id, status) -> int:
        return self._dao.query.filter(owner_id=str(owner_id), status=status).limit(1).all().total

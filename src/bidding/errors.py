"""Error taxonomy for the bidding domain.

Everything derives from ``protean.exceptions`` so callers may catch either the
specific class or Protean's base class. Messages follow Protean's convention of
a dict keyed by field name, each holding a list of strings.

Storage failures are not wrapped: errors raised by the database provider
propagate unchanged and are never retried here.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class InvalidQuoteData(ValidationError):
    """Price, delivery date or remarks of a quote are unacceptable."""


class OrderNotFound(ObjectNotFoundError):
    @classmethod
    def for_id(cls, order_id):
        return cls({"order_id": [f"Order `{order_id}` does not exist"]})


class QuoteNotFound(ObjectNotFoundError):
    @classmethod
    def for_id(cls, quote_id):
        return cls({"quote_id": [f"Quote `{quote_id}` does not exist"]})

    @classmethod
    def for_provider(cls, order_id, provider):
        return cls({"provider": [f"Provider `{provider}` has not quoted on order `{order_id}`"]})


class OrderAccessDenied(InvalidOperationError):
    """The caller does not own the order."""


class OrderAlreadyClosed(InvalidOperationError):
    """A mutation was attempted on an order that is no longer active."""

    @classmethod
    def for_id(cls, order_id):
        return cls({"order_id": [f"Order `{order_id}` is already closed"]})


class ConcurrentModificationConflict(OrderAlreadyClosed):
    """The conditional write found that the order had left the active state.

    Callers treat it exactly like :class:`OrderAlreadyClosed`: refresh and
    decide again.
    """

    @classmethod
    def for_id(cls, order_id):
        return cls({"order_id": [f"Order `{order_id}` was modified concurrently and is no longer active"]})


class DeadlineExceeded(InvalidOperationError):
    """The caller's deadline passed before the operation could commit."""

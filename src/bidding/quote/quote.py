"""Quote aggregate (CQRS): one provider's offer on one order.

A provider has at most one quote per order. The quote's identity is derived
from ``(order_id, provider)``, so the primary key of the ``quotes`` collection
doubles as the uniqueness constraint and a resubmission lands on the same row.
"""

from uuid import UUID, uuid5

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String

from bidding.domain import bidding
from bidding.errors import InvalidQuoteData
from bidding.utils import clock

MAX_PRICE = 999999.99
PROVIDER_MAX_LENGTH = 100
REMARKS_MAX_LENGTH = 500

_QUOTE_NAMESPACE = UUID("6f1c5a52-3c2e-4d0b-9a0e-5b8f2f4f7c11")


def quote_identity(order_id, provider) -> str:
    """Stable identifier of ``provider``'s quote on ``order_id``."""
    return str(uuid5(_QUOTE_NAMESPACE, f"{order_id}/{provider}"))


def normalize_price(price) -> float:
    return round(float(price), 2)


def clean_provider(provider) -> str:
    text = (provider or "").strip()
    if not text:
        raise ValidationError({"provider": ["is required"]})
    if len(text) > PROVIDER_MAX_LENGTH:
        raise ValidationError({"provider": [f"must be at most {PROVIDER_MAX_LENGTH} characters"]})
    return text


def validate_terms(price, estimated_delivery, remarks, now):
    """Check and normalize the commercial terms of a quote.

    Returns ``(price, estimated_delivery, remarks)`` with the price rounded to
    cents, the delivery date in UTC and blank remarks collapsed to ``None``.
    """
    errors = {}

    if price is None:
        errors["price"] = ["is required"]
    else:
        price = normalize_price(price)
        if price <= 0:
            errors["price"] = ["must be greater than 0"]
        elif price > MAX_PRICE:
            errors["price"] = [f"must not exceed {MAX_PRICE:.2f}"]

    if estimated_delivery is None:
        errors["estimated_delivery"] = ["is required"]
    else:
        estimated_delivery = clock.as_utc(estimated_delivery)
        if estimated_delivery <= now:
            errors["estimated_delivery"] = ["must be in the future"]

    if remarks is not None:
        remarks = remarks.strip() or None
        if remarks and len(remarks) > REMARKS_MAX_LENGTH:
            errors["remarks"] = [f"must be at most {REMARKS_MAX_LENGTH} characters"]

    if errors:
        raise InvalidQuoteData(errors)

    return price, estimated_delivery, remarks


@bidding.aggregate
class Quote:
    """A price and delivery-time offer from a provider."""

    id = Identifier(identifier=True)
    order_id = Identifier(required=True)
    provider = String(required=True, max_length=PROVIDER_MAX_LENGTH)
    price = Float(required=True)
    estimated_delivery = DateTime(required=True)
    remarks = String(max_length=REMARKS_MAX_LENGTH)

    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def price_must_be_positive(self):
        if self.price is not None and self.price <= 0:
            raise ValidationError({"price": ["Quoted price must be positive"]})

    @classmethod
    def submit(cls, order_id, provider, price, estimated_delivery, remarks=None):
        """A first quote from ``provider`` on ``order_id``."""
        provider = clean_provider(provider)
        now = clock.utc_now()
        price, estimated_delivery, remarks = validate_terms(price, estimated_delivery, remarks, now)

        return cls(
            id=quote_identity(order_id, provider),
            order_id=order_id,
            provider=provider,
            price=price,
            estimated_delivery=estimated_delivery,
            remarks=remarks,
            created_at=now,
            updated_at=now,
        )

    def revise(self, price, estimated_delivery, remarks=None):
        """Overwrite the terms in place. Identity and ``created_at`` stay."""
        now = clock.utc_now()
        price, estimated_delivery, remarks = validate_terms(price, estimated_delivery, remarks, now)

        with atomic_change(self):
            self.price = price
            self.estimated_delivery = estimated_delivery
            self.remarks = remarks
            self.updated_at = now

    @property
    def rank_key(self):
        """Ordering used wherever quotes compete: cheapest, then earliest, then provider name."""
        return (self.price, clock.as_utc(self.created_at), self.provider)

"""Order aggregate (CQRS): a shipment request open for competitive bidding.

An owner posts an order; providers quote against it until it closes. The
aggregate only decides *whether* a change is allowed and what the new state
looks like. Persisting a change is always a conditional write performed by
``OrderRepository.commit_if_unchanged`` so that racing requests cannot both
win.

State Machine (2 states):
    ACTIVE → CLOSED   (manual close, or close-via-selection)
    CLOSED → (terminal)
"""

from enum import Enum
from uuid import uuid4

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String

from bidding.domain import bidding
from bidding.errors import OrderAccessDenied, OrderAlreadyClosed
from bidding.utils import clock


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    ACTIVE = "active"
    CLOSED = "closed"


_VALID_TRANSITIONS = {
    OrderStatus.ACTIVE: {OrderStatus.CLOSED},
    OrderStatus.CLOSED: set(),  # Terminal
}

# (min, max) length of each free-text field after trimming
TEXT_LIMITS = {
    "warehouse": (2, 100),
    "goods": (2, 500),
    "delivery_address": (5, 200),
}


# Fields rewritten by an owner-side change
OWNER_WRITABLE_FIELDS = (
    "warehouse",
    "goods",
    "delivery_address",
    "status",
    "selected_provider",
    "selected_price",
    "selected_at",
    "updated_at",
)


def clean_text(field_name, value):
    """Trim ``value`` and enforce the length bounds configured for ``field_name``."""
    minimum, maximum = TEXT_LIMITS[field_name]
    text = (value or "").strip()
    if not text:
        raise ValidationError({field_name: ["is required"]})
    if len(text) < minimum or len(text) > maximum:
        raise ValidationError({field_name: [f"must be between {minimum} and {maximum} characters"]})
    return text


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@bidding.aggregate
class Order:
    """A logistics order posted by an owner for providers to bid on."""

    owner_id = Identifier(required=True)

    # Shipment details, editable while the order is active
    warehouse = String(required=True, max_length=100)
    goods = String(required=True, max_length=500)
    delivery_address = String(required=True, max_length=200)

    status = String(choices=OrderStatus, default=OrderStatus.ACTIVE.value)

    # Winning quote, recorded only by close-via-selection
    selected_provider = String(max_length=100)
    selected_price = Float()
    selected_at = DateTime()

    # Bumped on every owner-side change; the conditional write compares it
    revision = Integer(default=0)

    # Written by the quote submission guard. A fresh token per accepted quote
    # lets a selection detect quotes that changed after the order was read.
    last_quote_at = DateTime()
    quote_token = String(max_length=32)

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def selection_only_on_closed_orders(self):
        if self.selected_provider is not None and self.status != OrderStatus.CLOSED.value:
            raise ValidationError({"selected_provider": ["Only a closed order can have a selected provider"]})

    @invariant.post
    def selection_fields_are_recorded_together(self):
        selection = (self.selected_provider, self.selected_price, self.selected_at)
        if any(v is not None for v in selection) and any(v is None for v in selection):
            raise ValidationError({"selected_provider": ["Selected provider, price and time must be set together"]})

    @invariant.post
    def selected_price_must_be_positive(self):
        if self.selected_price is not None and self.selected_price <= 0:
            raise ValidationError({"selected_price": ["Selected price must be positive"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner_id, warehouse, goods, delivery_address):
        """Post a new order, open for bidding."""
        if not owner_id or not str(owner_id).strip():
            raise ValidationError({"owner_id": ["is required"]})

        now = clock.utc_now()
        return cls(
            owner_id=owner_id,
            warehouse=clean_text("warehouse", warehouse),
            goods=clean_text("goods", goods),
            delivery_address=clean_text("delivery_address", delivery_address),
            status=OrderStatus.ACTIVE.value,
            revision=0,
            quote_token=uuid4().hex,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    @property
    def is_active(self):
        return self.status == OrderStatus.ACTIVE.value

    def ensure_owned_by(self, owner_id):
        if str(self.owner_id) != str(owner_id):
            raise OrderAccessDenied({"owner_id": [f"Order `{self.id}` belongs to another owner"]})

    def ensure_active(self):
        if not self.is_active:
            raise OrderAlreadyClosed.for_id(self.id)

    def _assert_transition(self, target):
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise OrderAlreadyClosed.for_id(self.id)

    # -------------------------------------------------------------------
    # Behaviour
    # -------------------------------------------------------------------
    def revise(self, warehouse=None, goods=None, delivery_address=None):
        """Edit shipment details. ``None`` leaves a field untouched."""
        changes = {
            name: clean_text(name, value)
            for name, value in (
                ("warehouse", warehouse),
                ("goods", goods),
                ("delivery_address", delivery_address),
            )
            if value is not None
        }
        if not changes:
            raise ValidationError({"order": ["At least one of warehouse, goods or delivery_address is required"]})

        self.ensure_active()

        with atomic_change(self):
            for name, value in changes.items():
                setattr(self, name, value)
            self.updated_at = clock.utc_now()

    def close(self):
        """Close the order without choosing a provider."""
        self._assert_transition(OrderStatus.CLOSED)
        self.status = OrderStatus.CLOSED.value
        self.updated_at = clock.utc_now()

    def select(self, provider, price):
        """Close the order in favour of ``provider`` at ``price``.

        The caller is responsible for checking that the provider actually
        quoted that price.
        """
        self._assert_transition(OrderStatus.CLOSED)

        now = clock.utc_now()
        with atomic_change(self):
            self.status = OrderStatus.CLOSED.value
            self.selected_provider = provider
            self.selected_price = price
            self.selected_at = now
            self.updated_at = now

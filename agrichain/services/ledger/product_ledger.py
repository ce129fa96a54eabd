# agrichain/services/ledger/product_ledger.py
"""
ProductLedger: owns Product records, their quantities, states and history.

Shared primitives (lookups, ownership checks, quantity consumption, history
events, child creation) live here; the transfer / processing / sale engines
compose them into their protocols.

Quantity rule: whenever an operation consumes `n` units of a product, the
record's quantity drops by exactly `n`; it is never allowed below zero and
records are never deleted, even at quantity 0.
"""
from __future__ import annotations

from typing import List, Optional

from agrichain.models.ledger.ledger_models import (
    ZERO_ADDRESS,
    HistoryEvent,
    Product,
    ProductState,
    Role,
)
from agrichain.services.ledger.actor_registry import ActorRegistry
from agrichain.services.ledger.errors import (
    InsufficientQuantity,
    InvalidArgument,
    InvalidState,
    NotFound,
    Unauthorized,
)
from agrichain.services.ledger.store import LedgerStore

# quantities are persisted as BSON int64 in the command log
MAX_QUANTITY = 2**63 - 1


def require_positive(value: int, field: str) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{field} must be an integer")
    if value <= 0:
        raise InvalidArgument(f"{field} must be greater than 0")
    if value > MAX_QUANTITY:
        raise InvalidArgument(f"{field} must be at most {MAX_QUANTITY}")
    return value


def require_text(value: str, field: str) -> str:
    v = (value or "").strip()
    if not v:
        raise InvalidArgument(f"{field} is required")
    return v


class ProductLedger:

    def __init__(self, store: LedgerStore, registry: ActorRegistry):
        self._store = store
        self._registry = registry

    # -------------------------
    # Harvest
    # -------------------------
    def create_product(self, caller: str, name: str, quantity: int, unit: str, timestamp: int) -> Product:
        self._registry.require_role(caller, Role.FARM)
        name = require_text(name, "name")
        require_positive(quantity, "quantity")

        product = Product(
            name=name,
            quantity=quantity,
            unit=(unit or "").strip(),
            current_owner=caller,
            current_state=ProductState.AT_FARM,
            parent_product_id=0,
        )
        self._store.insert_product(product)
        product.append_event(self.event(caller, f"Harvested {quantity} {product.unit}".strip(), timestamp))
        return product

    # -------------------------
    # Primitives used by the engines
    # -------------------------
    def for_update(self, product_id: int) -> Product:
        product = None
        if isinstance(product_id, int) and not isinstance(product_id, bool) and product_id > 0:
            product = self._store.product_for_update(product_id)
        if product is None:
            raise NotFound(f"product #{product_id} does not exist")
        return product

    @staticmethod
    def require_owner(product: Product, caller: str) -> None:
        if product.current_owner != caller:
            raise Unauthorized(f"caller is not the current owner of product #{product.product_id}")

    @staticmethod
    def require_state(product: Product, *states: ProductState) -> None:
        if product.current_state not in states:
            wanted = " or ".join(s.name for s in states)
            raise InvalidState(
                f"product #{product.product_id} is {product.current_state.name}, expected {wanted}"
            )

    @staticmethod
    def check_available(product: Product, amount: int, field: str = "quantity") -> None:
        require_positive(amount, field)
        if amount > product.quantity:
            raise InsufficientQuantity(
                f"product #{product.product_id} has {product.quantity} {product.unit} available, requested {amount}"
            )

    @staticmethod
    def consume(product: Product, amount: int) -> None:
        """Caller must have run check_available() for this amount first."""
        product.quantity -= amount

    def event(self, caller: str, details: str, timestamp: int) -> HistoryEvent:
        return HistoryEvent(
            timestamp=timestamp,
            actor=caller,
            actor_role=self._registry.role_of(caller),
            details=details,
        )

    def spawn_child(
        self,
        *,
        name: str,
        quantity: int,
        unit: str,
        owner: str,
        state: ProductState,
        parent_product_id: int,
        parent_ids: List[int],
        destination: Optional[str] = None,
    ) -> Product:
        child = Product(
            name=name,
            quantity=quantity,
            unit=unit,
            current_owner=owner,
            current_state=state,
            destination_address=destination or ZERO_ADDRESS,
            parent_product_id=parent_product_id,
            parent_ids=list(parent_ids),
        )
        return self._store.insert_product(child)

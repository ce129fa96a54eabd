# agrichain/services/ledger/transfer_engine.py
"""
Custody transfer protocol: splitAndShip -> receiveProduct.

Shipping carves a child record off the source. The child stays in the
shipper's custody (currentOwner) while IN_TRANSIT; ownership moves only when
the addressed recipient calls receive_product().
"""
from __future__ import annotations

from agrichain.models.ledger.ledger_models import (
    ROLE_HOLDING_STATE,
    SHIPPABLE_DESTINATIONS,
    ZERO_ADDRESS,
    Product,
    ProductState,
)
from agrichain.services.ledger.actor_registry import ActorRegistry
from agrichain.services.ledger.errors import (
    InvalidDestination,
    InvalidState,
    NotInTransit,
    Unauthorized,
)
from agrichain.services.ledger.product_ledger import ProductLedger


class TransferEngine:

    def __init__(self, ledger: ProductLedger, registry: ActorRegistry):
        self._ledger = ledger
        self._registry = registry

    def split_and_ship(
        self,
        caller: str,
        product_id: int,
        quantity_to_ship: int,
        destination_address: str,
        timestamp: int,
    ) -> Product:
        source = self._ledger.for_update(product_id)
        self._ledger.require_owner(source, caller)

        allowed = SHIPPABLE_DESTINATIONS.get(source.current_state)
        if not allowed:
            raise InvalidState(f"product #{product_id} cannot be shipped while {source.current_state.name}")

        self._ledger.check_available(source, quantity_to_ship, "quantityToShip")

        if destination_address == caller:
            raise InvalidDestination("cannot ship a product to yourself")
        dest = self._registry.get_actor_profile(destination_address)
        if not dest.is_registered:
            raise InvalidDestination(f"destination {destination_address} is not a registered actor")
        if dest.role not in allowed:
            raise InvalidDestination(
                f"a {dest.role.label} cannot receive products that are {source.current_state.name}"
            )

        self._ledger.consume(source, quantity_to_ship)

        child = self._ledger.spawn_child(
            name=source.name,
            quantity=quantity_to_ship,
            unit=source.unit,
            owner=source.current_owner,
            state=ProductState.IN_TRANSIT,
            parent_product_id=source.product_id,
            parent_ids=[source.product_id],
            destination=destination_address,
        )
        child.append_event(
            self._ledger.event(caller, f"Split from #{source.product_id}, shipped to {destination_address}", timestamp)
        )
        return child

    def receive_product(self, caller: str, product_id: int, timestamp: int) -> Product:
        product = self._ledger.for_update(product_id)
        if product.current_state != ProductState.IN_TRANSIT:
            raise NotInTransit(f"product #{product_id} is not in transit")
        if product.destination_address != caller:
            raise Unauthorized(f"product #{product_id} is not addressed to caller")

        role = self._registry.role_of(caller)
        new_state = ROLE_HOLDING_STATE.get(role)
        if new_state is None:
            # destination was validated at ship time and profiles are immutable
            raise InvalidDestination(f"a {role.label} cannot hold products")

        product.current_owner = caller
        product.destination_address = ZERO_ADDRESS
        product.current_state = new_state
        product.append_event(self._ledger.event(caller, f"Received by {role.label}", timestamp))
        return product

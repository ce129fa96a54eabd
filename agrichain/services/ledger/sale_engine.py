# agrichain/services/ledger/sale_engine.py
from __future__ import annotations

from agrichain.models.ledger.ledger_models import Product, ProductState, Role
from agrichain.services.ledger.actor_registry import ActorRegistry
from agrichain.services.ledger.product_ledger import ProductLedger


class SaleEngine:
    """
    sellProduct: the sold portion is split off as its own SOLD record
    (parent = the retailer's stock record), like a shipment. The stock record
    is only decremented, and turns SOLD itself once it reaches 0.
    """

    def __init__(self, ledger: ProductLedger, registry: ActorRegistry):
        self._ledger = ledger
        self._registry = registry

    def sell_product(self, caller: str, product_id: int, quantity: int, timestamp: int) -> Product:
        self._registry.require_role(caller, Role.RETAILER)
        stock = self._ledger.for_update(product_id)
        self._ledger.require_owner(stock, caller)
        self._ledger.require_state(stock, ProductState.AT_RETAILER)
        self._ledger.check_available(stock, quantity, "quantity")

        self._ledger.consume(stock, quantity)

        sold = self._ledger.spawn_child(
            name=stock.name,
            quantity=quantity,
            unit=stock.unit,
            owner=caller,
            state=ProductState.SOLD,
            parent_product_id=stock.product_id,
            parent_ids=[stock.product_id],
        )
        sold.append_event(self._ledger.event(caller, f"Sold {quantity} {stock.unit}".strip(), timestamp))

        if stock.quantity == 0:
            stock.current_state = ProductState.SOLD
            stock.append_event(self._ledger.event(caller, "Sold out", timestamp))
        return sold

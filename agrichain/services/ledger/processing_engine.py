# agrichain/services/ledger/processing_engine.py
"""
Transformation and merge-lineage protocol.

Processing changes the physical form of goods, so the declared output
quantity is NOT tied to the amount consumed: 100 kg of paddy may yield 65 kg
of rice. Only the consumed inputs obey quantity conservation.

A source that is drained to 0 by processing becomes PROCESSED (terminal).
"""
from __future__ import annotations

from typing import List, Sequence

from agrichain.models.ledger.ledger_models import (
    RECIPE_DETAILS_PREFIX,
    Product,
    ProductState,
    Role,
)
from agrichain.services.ledger.actor_registry import ActorRegistry
from agrichain.services.ledger.errors import InvalidArgument
from agrichain.services.ledger.product_ledger import ProductLedger, require_positive, require_text


def recipe_details(ingredient_ids: Sequence[int]) -> str:
    return f"{RECIPE_DETAILS_PREFIX} " + ", ".join(f"#{i}" for i in ingredient_ids)


class ProcessingEngine:

    def __init__(self, ledger: ProductLedger, registry: ActorRegistry):
        self._ledger = ledger
        self._registry = registry

    def process_product(
        self,
        caller: str,
        source_id: int,
        quantity_to_process: int,
        new_name: str,
        new_quantity: int,
        new_unit: str,
        timestamp: int,
    ) -> Product:
        self._registry.require_role(caller, Role.PROCESSING_UNIT)
        source = self._ledger.for_update(source_id)
        self._ledger.require_owner(source, caller)
        self._ledger.require_state(source, ProductState.AT_PROCESSING_UNIT)
        self._ledger.check_available(source, quantity_to_process, "quantityToProcess")
        new_name = require_text(new_name, "newName")
        require_positive(new_quantity, "newQuantity")

        self._consume(caller, source, quantity_to_process, timestamp)

        output = self._ledger.spawn_child(
            name=new_name,
            quantity=new_quantity,
            unit=(new_unit or "").strip(),
            owner=caller,
            state=ProductState.AT_PROCESSING_UNIT,
            parent_product_id=source.product_id,
            parent_ids=[source.product_id],
        )
        output.append_event(self._ledger.event(caller, f"Processed from #{source.product_id}", timestamp))
        return output

    def process_with_recipe(
        self,
        caller: str,
        ingredient_ids: List[int],
        quantities_to_use: List[int],
        output_name: str,
        output_quantity: int,
        output_unit: str,
        timestamp: int,
    ) -> Product:
        self._registry.require_role(caller, Role.PROCESSING_UNIT)

        ingredient_ids = list(ingredient_ids or [])
        quantities_to_use = list(quantities_to_use or [])
        if not ingredient_ids:
            raise InvalidArgument("at least one ingredient is required")
        if len(ingredient_ids) != len(quantities_to_use):
            raise InvalidArgument("ingredientIds and quantitiesToUse must have equal length")
        if len(set(ingredient_ids)) != len(ingredient_ids):
            raise InvalidArgument("ingredientIds must be distinct")

        output_name = require_text(output_name, "outputName")
        require_positive(output_quantity, "outputQuantity")

        # validate every ingredient before touching any of them
        ingredients: List[Product] = []
        for pid, qty in zip(ingredient_ids, quantities_to_use):
            ing = self._ledger.for_update(pid)
            self._ledger.require_owner(ing, caller)
            self._ledger.require_state(ing, ProductState.AT_PROCESSING_UNIT)
            self._ledger.check_available(ing, qty, f"quantitiesToUse[#{pid}]")
            ingredients.append(ing)

        for ing, qty in zip(ingredients, quantities_to_use):
            self._consume(caller, ing, qty, timestamp)

        output = self._ledger.spawn_child(
            name=output_name,
            quantity=output_quantity,
            unit=(output_unit or "").strip(),
            owner=caller,
            state=ProductState.AT_PROCESSING_UNIT,
            # a scalar pointer cannot name several parents
            parent_product_id=0,
            parent_ids=ingredient_ids,
        )
        output.append_event(self._ledger.event(caller, recipe_details(ingredient_ids), timestamp))
        return output

    def _consume(self, caller: str, product: Product, amount: int, timestamp: int) -> None:
        self._ledger.consume(product, amount)
        if product.quantity == 0:
            product.current_state = ProductState.PROCESSED
            product.append_event(self._ledger.event(caller, "Fully consumed by processing", timestamp))

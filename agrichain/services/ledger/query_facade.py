# agrichain/services/ledger/query_facade.py
"""
Read-only traversal over the ledger: product lookups, dashboard filters and
lineage walking for the traceability views.

Every returned Product/Actor is a deep copy so callers can never mutate
ledger state through a read.
"""
from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from agrichain.models.ledger.ledger_models import (
    RECIPE_DETAILS_PREFIX,
    Actor,
    HistoryEvent,
    Product,
    ProductState,
    empty_product,
)
from agrichain.services.ledger.actor_registry import ActorRegistry
from agrichain.services.ledger.store import LedgerStore

_ID_REF = re.compile(r"#(\d+)")


def parse_recipe_ids(details: str) -> List[int]:
    """'Created from processing ingredients: #10, #11' -> [10, 11]"""
    if not details or not details.startswith(RECIPE_DETAILS_PREFIX):
        return []
    return [int(m) for m in _ID_REF.findall(details)]


@dataclass
class Lineage:
    product: Product
    # oldest first, each paired with the id of the record it was logged on
    timeline: List[Tuple[int, HistoryEvent]] = field(default_factory=list)
    # start id first, root harvest last
    ancestor_ids: List[int] = field(default_factory=list)
    source_ids: List[int] = field(default_factory=list)
    ingredient_timelines: Dict[int, List[Tuple[int, HistoryEvent]]] = field(default_factory=dict)


class QueryFacade:

    def __init__(self, store: LedgerStore, registry: ActorRegistry):
        self._store = store
        self._registry = registry

    # -------------------------
    # Single records
    # -------------------------
    def get_product(self, product_id: int) -> Product:
        """Full record, or the zero-value Product for ids never assigned."""
        p = self._store.get_product(product_id) if isinstance(product_id, int) else None
        return copy.deepcopy(p) if p is not None else empty_product()

    def get_actor_profile(self, address: str) -> Actor:
        return copy.deepcopy(self._registry.get_actor_profile(address))

    def product_counter(self) -> int:
        return self._store.product_counter

    # -------------------------
    # Dashboard filters
    # -------------------------
    def list_products(
        self,
        owner: Optional[str] = None,
        state: Optional[ProductState] = None,
        destination: Optional[str] = None,
        in_stock_only: bool = False,
    ) -> List[Product]:
        out: List[Product] = []
        for p in self._store.iter_products():
            if owner is not None and p.current_owner != owner:
                continue
            if state is not None and p.current_state != state:
                continue
            if destination is not None and p.destination_address != destination:
                continue
            if in_stock_only and p.quantity <= 0:
                continue
            out.append(copy.deepcopy(p))
        return out

    def incoming_shipments(self, address: str) -> List[Product]:
        return self.list_products(destination=address, state=ProductState.IN_TRANSIT)

    def shipped_by(self, address: str) -> List[Product]:
        """Split-and-ship children sent by `address`, in transit or already received."""
        out: List[Product] = []
        for p in self._store.iter_products():
            if not p.history:
                continue
            first = p.history[0]
            if first.actor == address and first.details.startswith("Split from"):
                out.append(copy.deepcopy(p))
        return out

    # -------------------------
    # Lineage
    # -------------------------
    def walk_parents(self, start_id: int) -> Tuple[List[int], List[Tuple[int, HistoryEvent]]]:
        """
        Follow parentProductId back to a root (0) with a visited-set guard.
        Returns (ids walked, merged history oldest first).
        """
        ids: List[int] = []
        timeline: List[Tuple[int, HistoryEvent]] = []
        visited: Set[int] = set()

        current = start_id
        while current > 0 and current not in visited:
            visited.add(current)
            p = self._store.get_product(current)
            if p is None:
                break
            ids.append(current)
            timeline = [(current, copy.deepcopy(e)) for e in p.history] + timeline
            current = p.parent_product_id
        return ids, timeline

    def recipe_sources(self, product: Product) -> List[int]:
        """
        Ingredient ids of a recipe merge: the structured parent list when the
        record has one, otherwise whatever the recipe history text references.
        """
        if product.parent_product_id == 0 and product.parent_ids:
            return list(product.parent_ids)
        out: List[int] = []
        for ev in product.history:
            for pid in parse_recipe_ids(ev.details):
                if pid not in out:
                    out.append(pid)
        return out

    def lineage(self, product_id: int) -> Optional[Lineage]:
        product = self._store.get_product(product_id) if isinstance(product_id, int) else None
        if product is None:
            return None

        ancestor_ids, timeline = self.walk_parents(product_id)
        result = Lineage(product=copy.deepcopy(product), timeline=timeline, ancestor_ids=ancestor_ids)

        # recipe merges anywhere on the main chain, then recursively inside ingredients
        pending: List[int] = []
        for pid in ancestor_ids:
            for src in self.recipe_sources(self._store.get_product(pid)):
                if src not in pending:
                    pending.append(src)
        result.source_ids = list(pending)

        seen: Set[int] = set(ancestor_ids)
        while pending:
            src = pending.pop(0)
            if src in seen:
                continue
            seen.add(src)
            src_ids, src_timeline = self.walk_parents(src)
            if not src_ids:
                continue
            result.ingredient_timelines[src] = src_timeline
            for pid in src_ids:
                seen.add(pid)
                for nested in self.recipe_sources(self._store.get_product(pid)):
                    if nested not in seen and nested not in pending:
                        pending.append(nested)
        return result

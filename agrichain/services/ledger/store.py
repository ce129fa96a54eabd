# agrichain/services/ledger/store.py
"""
In-memory ledger state plus a copy-on-write transaction wrapper.

All writes go through `LedgerStore.transaction()`. The first time a record is
touched inside a transaction its pre-image is saved; any exception raised in
the block restores those pre-images, drops records created in the block and
resets the product counter, so a failed command leaves no trace.
"""
from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from agrichain.models.ledger.ledger_models import Actor, Product

logger = logging.getLogger(__name__)


@dataclass
class StoreTransaction:
    name: str
    counter_before: int
    product_preimages: Dict[int, Product] = field(default_factory=dict)
    created_products: List[int] = field(default_factory=list)
    created_actors: List[str] = field(default_factory=list)


class LedgerStore:

    def __init__(self):
        self.actors: Dict[str, Actor] = {}
        self.products: Dict[int, Product] = {}
        self.product_counter: int = 0
        self._tx: Optional[StoreTransaction] = None

    # -------------------------
    # Transactions
    # -------------------------
    @contextmanager
    def transaction(self, name: str = "") -> Iterator[StoreTransaction]:
        if self._tx is not None:
            raise RuntimeError("nested ledger transactions are not supported")

        tx = StoreTransaction(name=name, counter_before=self.product_counter)
        self._tx = tx
        try:
            yield tx
        except BaseException:
            self._rollback(tx)
            raise
        finally:
            self._tx = None

    def _rollback(self, tx: StoreTransaction) -> None:
        for pid in tx.created_products:
            self.products.pop(pid, None)
        for pid, pre in tx.product_preimages.items():
            self.products[pid] = pre
        for addr in tx.created_actors:
            self.actors.pop(addr, None)
        self.product_counter = tx.counter_before
        logger.debug("rolled back ledger transaction %s", tx.name or "<unnamed>")

    def _require_tx(self) -> StoreTransaction:
        if self._tx is None:
            raise RuntimeError("ledger writes must run inside store.transaction()")
        return self._tx

    # -------------------------
    # Reads
    # -------------------------
    def get_product(self, product_id: int) -> Optional[Product]:
        return self.products.get(product_id)

    def get_actor(self, address: str) -> Optional[Actor]:
        return self.actors.get(address)

    def iter_products(self) -> Iterator[Product]:
        for pid in range(1, self.product_counter + 1):
            p = self.products.get(pid)
            if p is not None:
                yield p

    # -------------------------
    # Writes
    # -------------------------
    def product_for_update(self, product_id: int) -> Optional[Product]:
        tx = self._require_tx()
        p = self.products.get(product_id)
        if p is None:
            return None
        if product_id not in tx.created_products and product_id not in tx.product_preimages:
            tx.product_preimages[product_id] = copy.deepcopy(p)
        return p

    def insert_product(self, product: Product) -> Product:
        tx = self._require_tx()
        self.product_counter += 1
        product.product_id = self.product_counter
        self.products[product.product_id] = product
        tx.created_products.append(product.product_id)
        return product

    def insert_actor(self, actor: Actor) -> Actor:
        tx = self._require_tx()
        if actor.address in self.actors:
            raise RuntimeError(f"actor {actor.address} already stored")
        self.actors[actor.address] = actor
        tx.created_actors.append(actor.address)
        return actor

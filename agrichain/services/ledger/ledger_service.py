# agrichain/services/ledger/ledger_service.py
"""
LedgerService: the single entry point for every ledger read and write.

Single-writer discipline:
  - one RLock serialises all commands (and the snapshot copies made by reads)
  - each command runs inside store.transaction(); any exception, including a
    failed append to the durable log, rolls the in-memory state back
  - committed commands are appended to the hash-chained CommandLog and can be
    replayed (sync) to rebuild identical state in another process
  - with a durable log every command and read first replays entries other
    processes appended; a command that still loses the append race (unique
    seq) is rolled back and raises StaleLedgerHead once caught up

Addresses are normalised to checksum form before they reach the engines or
the log, and each command's timestamp is captured once and persisted, so a
replay produces byte-identical history.
"""
from __future__ import annotations

import copy
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from flask import current_app
from pymongo.errors import DuplicateKeyError

from agrichain.blockchain import normalize_address
from agrichain.models.ledger.ledger_models import Actor, Product, ProductState
from agrichain.mongo_safe import get_col
from agrichain.services.ledger.actor_registry import CLAIM_ENTRY_POINTS, ActorRegistry
from agrichain.services.ledger.command_log import CommandLog
from agrichain.services.ledger.errors import (
    InvalidArgument,
    InvalidDestination,
    LedgerError,
    LedgerIntegrityError,
    StaleLedgerHead,
)
from agrichain.services.ledger.processing_engine import ProcessingEngine
from agrichain.services.ledger.product_ledger import ProductLedger
from agrichain.services.ledger.query_facade import Lineage, QueryFacade
from agrichain.services.ledger.sale_engine import SaleEngine
from agrichain.services.ledger.store import LedgerStore
from agrichain.services.ledger.transfer_engine import TransferEngine

logger = logging.getLogger(__name__)

Handler = Callable[[str, Dict[str, Any], int], Any]


def _describe(result: Any) -> str:
    if isinstance(result, Product):
        return f"product #{result.product_id}"
    if isinstance(result, Actor):
        return f"actor {result.address} ({result.role.label})"
    return "-"


class LedgerService:

    def __init__(self, log_collection: Optional[Any] = None, clock: Optional[Callable[[], int]] = None):
        self._lock = threading.RLock()
        self._clock = clock or (lambda: int(time.time()))

        self.store = LedgerStore()
        self.registry = ActorRegistry(self.store)
        self.products = ProductLedger(self.store, self.registry)
        self.transfers = TransferEngine(self.products, self.registry)
        self.processing = ProcessingEngine(self.products, self.registry)
        self.sales = SaleEngine(self.products, self.registry)
        self.queries = QueryFacade(self.store, self.registry)

        self._log = CommandLog(log_collection)
        self._handlers: Dict[str, Handler] = self._build_handlers()

        if self._log.durable:
            n = self.sync()
            logger.info("ledger rebuilt from command log: %d command(s), head seq=%d", n, self._log.last_seq)

    # -------------------------------------------------
    # Command table (also drives replay)
    # -------------------------------------------------
    def _build_handlers(self) -> Dict[str, Handler]:
        reg = self.registry
        claims = {
            "claimAdminRole": lambda c, a, ts: reg.claim_admin_role(c, a["name"], a["phone"]),
            "claimCollectionPointRole": lambda c, a, ts: reg.claim_collection_point_role(
                c, a["name"], a["phone"], a.get("location", "")),
            "claimWarehouseRole": lambda c, a, ts: reg.claim_warehouse_role(
                c, a["name"], a["phone"], a.get("location", "")),
            "claimProcessingUnitRole": lambda c, a, ts: reg.claim_processing_unit_role(
                c, a["name"], a["phone"], a.get("location", "")),
            "claimRetailerRole": lambda c, a, ts: reg.claim_retailer_role(
                c, a["name"], a["phone"], a.get("location", "")),
        }

        return {
            **claims,
            "addFarmAndProfile": lambda c, a, ts: reg.add_farm_and_profile(
                c, a["farmAddress"], a["name"], a["phone"], a.get("location", "")),
            "createProduct": lambda c, a, ts: self.products.create_product(
                c, a["name"], a["quantity"], a["unit"], ts),
            "splitAndShip": lambda c, a, ts: self.transfers.split_and_ship(
                c, a["productId"], a["quantityToShip"], a["destinationAddress"], ts),
            "receiveProduct": lambda c, a, ts: self.transfers.receive_product(c, a["productId"], ts),
            "processProduct": lambda c, a, ts: self.processing.process_product(
                c, a["sourceId"], a["quantityToProcess"], a["newName"], a["newQuantity"], a["newUnit"], ts),
            "processWithRecipe": lambda c, a, ts: self.processing.process_with_recipe(
                c, a["ingredientIds"], a["quantitiesToUse"], a["outputName"], a["outputQuantity"],
                a["outputUnit"], ts),
            "sellProduct": lambda c, a, ts: self.sales.sell_product(c, a["productId"], a["quantity"], ts),
        }

    def _dispatch(self, op: str, caller: str, args: Dict[str, Any], timestamp: int) -> Any:
        handler = self._handlers.get(op)
        if handler is None:
            raise InvalidArgument(f"unknown ledger operation {op!r}")
        return handler(caller, args, timestamp)

    def _execute(self, op: str, caller: str, args: Dict[str, Any]) -> Any:
        caller = self._address(caller, "caller")
        with self._lock:
            self._catch_up()
            ts = self._clock()
            try:
                with self.store.transaction(op):
                    result = self._dispatch(op, caller, args, ts)
                    entry = self._log.append(op, caller, args, ts)
            except DuplicateKeyError:
                # another writer took this seq between catch-up and append
                self.sync()
                logger.warning("ledger %s rejected for %s: stale head, caught up to seq=%d", op, caller, self._log.last_seq)
                raise StaleLedgerHead(f"ledger advanced to seq {self._log.last_seq} by another writer; retry")
            except LedgerError as e:
                logger.warning("ledger %s rejected for %s: %s (%s)", op, caller, e.code, e.message)
                raise

            logger.info("ledger %s committed seq=%d caller=%s -> %s", op, entry["seq"], caller, _describe(result))
            return copy.deepcopy(result)

    def sync(self) -> int:
        """Apply log entries written since the last applied seq. Returns how many were applied."""
        applied = 0
        with self._lock:
            for entry in self._log.read_after(self._log.last_seq):
                try:
                    with self.store.transaction(entry["op"]):
                        self._dispatch(entry["op"], entry["caller"], entry["args"], entry["timestamp"])
                except LedgerError as e:
                    raise LedgerIntegrityError(
                        f"replay of seq {entry['seq']} ({entry['op']}) failed: {e.message}"
                    ) from e
                applied += 1
        return applied

    def _catch_up(self) -> None:
        """Replay entries other processes appended, so writes and reads see the log head."""
        if self._log.durable:
            n = self.sync()
            if n:
                logger.info("ledger caught up %d command(s) from the log, head seq=%d", n, self._log.last_seq)

    @property
    def head_seq(self) -> int:
        return self._log.last_seq

    @property
    def head_hash(self) -> str:
        return self._log.last_hash

    @staticmethod
    def _address(value: Any, field: str, error=InvalidArgument) -> str:
        try:
            return normalize_address(value)
        except ValueError:
            raise error(f"{field} is not a valid wallet address: {value!r}")

    # -------------------------------------------------
    # ActorRegistry
    # -------------------------------------------------
    def claim_admin_role(self, caller: str, name: str, phone: str) -> Actor:
        return self._execute("claimAdminRole", caller, {"name": name, "phone": phone})

    def claim_collection_point_role(self, caller: str, name: str, phone: str, location: str = "") -> Actor:
        return self._execute("claimCollectionPointRole", caller, {"name": name, "phone": phone, "location": location})

    def claim_warehouse_role(self, caller: str, name: str, phone: str, location: str = "") -> Actor:
        return self._execute("claimWarehouseRole", caller, {"name": name, "phone": phone, "location": location})

    def claim_processing_unit_role(self, caller: str, name: str, phone: str, location: str = "") -> Actor:
        return self._execute("claimProcessingUnitRole", caller, {"name": name, "phone": phone, "location": location})

    def claim_retailer_role(self, caller: str, name: str, phone: str, location: str = "") -> Actor:
        return self._execute("claimRetailerRole", caller, {"name": name, "phone": phone, "location": location})

    def claim(self, entry_point: str, caller: str, name: str, phone: str, location: str = "") -> Actor:
        """Route helper: `entry_point` must be one of CLAIM_ENTRY_POINTS."""
        if entry_point not in CLAIM_ENTRY_POINTS:
            raise InvalidArgument(f"unknown claim entry point {entry_point!r}")
        args: Dict[str, Any] = {"name": name, "phone": phone}
        if entry_point != "claimAdminRole":
            args["location"] = location or ""
        return self._execute(entry_point, caller, args)

    def add_farm_and_profile(self, caller: str, farm_address: str, name: str, phone: str, location: str = "") -> Actor:
        farm = self._address(farm_address, "farmAddress")
        return self._execute(
            "addFarmAndProfile",
            caller,
            {"farmAddress": farm, "name": name, "phone": phone, "location": location or ""},
        )

    def get_actor_profile(self, address: str) -> Actor:
        addr = self._address(address, "address")
        with self._lock:
            self._catch_up()
            return self.queries.get_actor_profile(addr)

    # -------------------------------------------------
    # ProductLedger / engines
    # -------------------------------------------------
    def create_product(self, caller: str, name: str, quantity: int, unit: str) -> Product:
        return self._execute("createProduct", caller, {"name": name, "quantity": quantity, "unit": unit})

    def split_and_ship(self, caller: str, product_id: int, quantity_to_ship: int, destination_address: str) -> Product:
        dest = self._address(destination_address, "destinationAddress", error=InvalidDestination)
        return self._execute(
            "splitAndShip",
            caller,
            {"productId": product_id, "quantityToShip": quantity_to_ship, "destinationAddress": dest},
        )

    def receive_product(self, caller: str, product_id: int) -> Product:
        return self._execute("receiveProduct", caller, {"productId": product_id})

    def process_product(
        self,
        caller: str,
        source_id: int,
        quantity_to_process: int,
        new_name: str,
        new_quantity: int,
        new_unit: str,
    ) -> Product:
        return self._execute(
            "processProduct",
            caller,
            {
                "sourceId": source_id,
                "quantityToProcess": quantity_to_process,
                "newName": new_name,
                "newQuantity": new_quantity,
                "newUnit": new_unit,
            },
        )

    def process_with_recipe(
        self,
        caller: str,
        ingredient_ids: List[int],
        quantities_to_use: List[int],
        output_name: str,
        output_quantity: int,
        output_unit: str,
    ) -> Product:
        return self._execute(
            "processWithRecipe",
            caller,
            {
                "ingredientIds": list(ingredient_ids or []),
                "quantitiesToUse": list(quantities_to_use or []),
                "outputName": output_name,
                "outputQuantity": output_quantity,
                "outputUnit": output_unit,
            },
        )

    def sell_product(self, caller: str, product_id: int, quantity: int) -> Product:
        return self._execute("sellProduct", caller, {"productId": product_id, "quantity": quantity})

    # -------------------------------------------------
    # QueryFacade
    # -------------------------------------------------
    def get_product(self, product_id: int) -> Product:
        with self._lock:
            self._catch_up()
            return self.queries.get_product(product_id)

    def product_counter(self) -> int:
        with self._lock:
            self._catch_up()
            return self.queries.product_counter()

    def list_products(
        self,
        owner: Optional[str] = None,
        state: Optional[ProductState] = None,
        destination: Optional[str] = None,
        in_stock_only: bool = False,
    ) -> List[Product]:
        owner = self._address(owner, "owner") if owner else None
        destination = self._address(destination, "destination") if destination else None
        with self._lock:
            self._catch_up()
            return self.queries.list_products(
                owner=owner, state=state, destination=destination, in_stock_only=in_stock_only
            )

    def incoming_shipments(self, address: str) -> List[Product]:
        addr = self._address(address, "address")
        with self._lock:
            self._catch_up()
            return self.queries.incoming_shipments(addr)

    def shipped_by(self, address: str) -> List[Product]:
        addr = self._address(address, "address")
        with self._lock:
            self._catch_up()
            return self.queries.shipped_by(addr)

    def lineage(self, product_id: int) -> Optional[Lineage]:
        with self._lock:
            self._catch_up()
            return self.queries.lineage(product_id)


# -------------------------------------------------------------------
# App wiring (used by app.create_app)
# -------------------------------------------------------------------
def init_ledger(app) -> LedgerService:
    """
    Build the process-wide LedgerService and attach it to app.config["LEDGER"].
    Uses the Mongo command log when Mongo is available, else runs in memory.
    """
    with app.app_context():
        col = get_col(app.config.get("LEDGER_LOG_COLLECTION", "ledger_commands"))

    ledger = LedgerService(log_collection=col)
    app.config["LEDGER"] = ledger

    mode = "durable (Mongo)" if col is not None else "in-memory"
    print(f"✓ Ledger ready [{mode}] head seq={ledger.head_seq} products={ledger.product_counter()}")
    return ledger


def get_ledger() -> LedgerService:
    return current_app.config["LEDGER"]

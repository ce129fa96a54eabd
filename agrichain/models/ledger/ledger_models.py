# agrichain/models/ledger/ledger_models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Role(IntEnum):
    """On-chain actor roles. Customers are off-chain only."""
    ADMIN = 0
    FARM = 1
    COLLECTION_POINT = 2
    WAREHOUSE = 3
    PROCESSING_UNIT = 4
    RETAILER = 5

    # zero-value profile marker, never assigned to a registered actor
    NONE = 255

    @property
    def label(self) -> str:
        return ROLE_LABELS.get(self, "Unknown")


class ProductState(IntEnum):
    AT_FARM = 0
    IN_TRANSIT = 1
    AT_COLLECTION_POINT = 2
    AT_WAREHOUSE = 3
    AT_PROCESSING_UNIT = 4
    AT_RETAILER = 5
    PROCESSED = 6
    SOLD = 7

    @property
    def is_terminal(self) -> bool:
        return self in (ProductState.PROCESSED, ProductState.SOLD)


ROLE_LABELS: Dict[Role, str] = {
    Role.ADMIN: "Admin",
    Role.FARM: "Farm",
    Role.COLLECTION_POINT: "Collection Point",
    Role.WAREHOUSE: "Warehouse",
    Role.PROCESSING_UNIT: "Processing Unit",
    Role.RETAILER: "Retailer",
}

# state a product lands in when an actor of this role takes custody
ROLE_HOLDING_STATE: Dict[Role, ProductState] = {
    Role.FARM: ProductState.AT_FARM,
    Role.COLLECTION_POINT: ProductState.AT_COLLECTION_POINT,
    Role.WAREHOUSE: ProductState.AT_WAREHOUSE,
    Role.PROCESSING_UNIT: ProductState.AT_PROCESSING_UNIT,
    Role.RETAILER: ProductState.AT_RETAILER,
}

# which roles may receive a shipment of a product in a given state
SHIPPABLE_DESTINATIONS: Dict[ProductState, frozenset] = {
    ProductState.AT_FARM: frozenset({
        Role.COLLECTION_POINT, Role.WAREHOUSE, Role.PROCESSING_UNIT, Role.RETAILER,
    }),
    ProductState.AT_COLLECTION_POINT: frozenset({
        Role.WAREHOUSE, Role.PROCESSING_UNIT, Role.RETAILER,
    }),
    ProductState.AT_WAREHOUSE: frozenset({Role.PROCESSING_UNIT, Role.RETAILER}),
    ProductState.AT_PROCESSING_UNIT: frozenset({Role.WAREHOUSE, Role.RETAILER}),
}

RECIPE_DETAILS_PREFIX = "Created from processing ingredients:"


@dataclass
class Actor:
    address: str = ZERO_ADDRESS
    role: Role = Role.NONE
    name: str = ""
    phone: str = ""
    location: str = ""

    @property
    def is_registered(self) -> bool:
        return self.role != Role.NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "role": int(self.role),
            "roleName": self.role.label,
            "name": self.name,
            "phone": self.phone,
            "location": self.location,
            "isRegistered": self.is_registered,
        }


@dataclass
class HistoryEvent:
    timestamp: int
    actor: str
    actor_role: Role
    details: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "actor": self.actor,
            "actorRole": int(self.actor_role),
            "details": self.details,
        }


@dataclass
class Product:
    product_id: int = 0
    name: str = ""
    quantity: int = 0
    unit: str = ""
    current_owner: str = ZERO_ADDRESS
    current_state: ProductState = ProductState.AT_FARM
    destination_address: str = ZERO_ADDRESS
    parent_product_id: int = 0
    # every parent, including all recipe ingredients
    parent_ids: List[int] = field(default_factory=list)
    history: List[HistoryEvent] = field(default_factory=list)

    @property
    def exists(self) -> bool:
        return self.product_id > 0

    def append_event(self, event: HistoryEvent) -> None:
        self.history.append(event)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit,
            "currentOwner": self.current_owner,
            "currentState": int(self.current_state),
            "stateName": self.current_state.name,
            "destinationAddress": self.destination_address,
            "parentProductId": self.parent_product_id,
            "parentIds": list(self.parent_ids),
            "history": [e.to_dict() for e in self.history],
        }


def empty_product() -> Product:
    """Zero-value record returned for ids that were never assigned."""
    return Product()


def empty_actor(address: Optional[str] = None) -> Actor:
    return Actor(address=address or ZERO_ADDRESS)

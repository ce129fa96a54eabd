# agrichain/services/ledger/actor_registry.py
from __future__ import annotations

from typing import Dict

from agrichain.models.ledger.ledger_models import Actor, Role, empty_actor
from agrichain.services.ledger.errors import AlreadyRegistered, Unauthorized
from agrichain.services.ledger.store import LedgerStore

# Self-service claim entry points. Farm is deliberately absent: farms are
# only registered by an Admin through add_farm_and_profile().
CLAIM_ENTRY_POINTS: Dict[str, Role] = {
    "claimAdminRole": Role.ADMIN,
    "claimCollectionPointRole": Role.COLLECTION_POINT,
    "claimWarehouseRole": Role.WAREHOUSE,
    "claimProcessingUnitRole": Role.PROCESSING_UNIT,
    "claimRetailerRole": Role.RETAILER,
}


class ActorRegistry:
    """Wallet address -> role + profile. Profiles are immutable once claimed."""

    def __init__(self, store: LedgerStore):
        self._store = store

    # -------------------------
    # Role-bound entry points
    # -------------------------
    def claim_admin_role(self, caller: str, name: str, phone: str) -> Actor:
        return self._register(caller, Role.ADMIN, name, phone, "")

    def claim_collection_point_role(self, caller: str, name: str, phone: str, location: str = "") -> Actor:
        return self._register(caller, Role.COLLECTION_POINT, name, phone, location)

    def claim_warehouse_role(self, caller: str, name: str, phone: str, location: str = "") -> Actor:
        return self._register(caller, Role.WAREHOUSE, name, phone, location)

    def claim_processing_unit_role(self, caller: str, name: str, phone: str, location: str = "") -> Actor:
        return self._register(caller, Role.PROCESSING_UNIT, name, phone, location)

    def claim_retailer_role(self, caller: str, name: str, phone: str, location: str = "") -> Actor:
        return self._register(caller, Role.RETAILER, name, phone, location)

    def add_farm_and_profile(self, caller: str, farm_address: str, name: str, phone: str, location: str = "") -> Actor:
        self.require_role(caller, Role.ADMIN)
        return self._register(farm_address, Role.FARM, name, phone, location)

    # -------------------------
    # Lookups
    # -------------------------
    def get_actor_profile(self, address: str) -> Actor:
        """Registered profile, or the zero-value Actor (role NONE) for unknown addresses."""
        return self._store.get_actor(address) or empty_actor(address)

    def role_of(self, address: str) -> Role:
        return self.get_actor_profile(address).role

    def require_role(self, address: str, *roles: Role) -> Actor:
        actor = self.get_actor_profile(address)
        if not actor.is_registered or actor.role not in roles:
            wanted = " or ".join(r.label for r in roles)
            raise Unauthorized(f"caller {address} is not a registered {wanted}")
        return actor

    # -------------------------
    # Internal
    # -------------------------
    def _register(self, address: str, role: Role, name: str, phone: str, location: str) -> Actor:
        if self._store.get_actor(address) is not None:
            raise AlreadyRegistered(f"wallet {address} is already registered")

        actor = Actor(
            address=address,
            role=role,
            name=name,
            phone=phone,
            location=location or "",
        )
        return self._store.insert_actor(actor)

# agrichain/services/directory/actor_directory.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from agrichain.blockchain import normalize_address
from agrichain.models.ledger.ledger_models import ROLE_LABELS, Role
from agrichain.mongo_safe import get_col

logger = logging.getLogger(__name__)

SHIPPABLE_ROLE_LABELS = [
    ROLE_LABELS[Role.COLLECTION_POINT],
    ROLE_LABELS[Role.WAREHOUSE],
    ROLE_LABELS[Role.PROCESSING_UNIT],
    ROLE_LABELS[Role.RETAILER],
]


class ActorDirectory:
    """
    Off-chain user directory (Mongo `users`), used by dashboards to pick a
    shipping destination by role + name.

    The wallet address is authoritative: names here are display data only and
    the ledger never trusts them.
    """

    def __init__(self, collection_name: str = "users", collection: Optional[Any] = None):
        self._collection_name = collection_name
        self._col = collection

    def _users(self):
        return self._col if self._col is not None else get_col(self._collection_name)

    def list_shippable(self, role: Optional[str] = None, search: str = "") -> List[Dict[str, Any]]:
        col = self._users()
        if col is None:
            return []

        if role and role not in SHIPPABLE_ROLE_LABELS:
            return []
        roles = [role] if role else SHIPPABLE_ROLE_LABELS
        q: Dict[str, Any] = {"role": {"$in": roles}, "wallet": {"$exists": True, "$ne": ""}}

        out: List[Dict[str, Any]] = []
        needle = (search or "").strip().lower()
        for doc in col.find(q, {"_id": 1, "name": 1, "role": 1, "wallet": 1}).sort([("name", 1)]):
            try:
                wallet = normalize_address(doc.get("wallet"))
            except ValueError:
                logger.warning("skipping directory user %s with bad wallet", doc.get("_id"))
                continue
            name = doc.get("name") or ""
            if needle and needle not in name.lower():
                continue
            out.append({"_id": str(doc.get("_id")), "name": name, "role": doc.get("role", ""), "wallet": wallet})
        return out

    def resolve(self, role: str, name: str) -> Optional[str]:
        """(role label, exact name) -> checksum wallet, or None when not found / ambiguous."""
        matches = [a for a in self.list_shippable(role=role) if a["name"].strip().lower() == (name or "").strip().lower()]
        if len(matches) != 1:
            return None
        return matches[0]["wallet"]

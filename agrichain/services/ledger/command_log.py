# agrichain/services/ledger/command_log.py
"""
Durable, append-only, hash-chained log of committed ledger commands.

Each entry:
  { seq, op, caller, args, timestamp, prevHash, hash }
where hash = keccak256(prevHash || canonical JSON of the other fields).

The collection is optional: without one the log only tracks the chain head
in memory (DISABLE_MONGO=1 / tests).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional

from agrichain.blockchain import GENESIS_HASH, ledger_digest
from agrichain.services.ledger.errors import LedgerIntegrityError

logger = logging.getLogger(__name__)


def _payload(entry: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "seq": entry["seq"],
        "op": entry["op"],
        "caller": entry["caller"],
        "args": entry["args"],
        "timestamp": entry["timestamp"],
    }


class CommandLog:

    def __init__(self, collection: Optional[Any] = None):
        self._col = collection
        self.last_seq = 0
        self.last_hash = GENESIS_HASH

        if self._col is not None:
            try:
                self._col.create_index("seq", unique=True)
            except Exception as e:
                logger.warning("ledger log index error: %s", e)

    @property
    def durable(self) -> bool:
        return self._col is not None

    def append(self, op: str, caller: str, args: Dict[str, Any], timestamp: int) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "seq": self.last_seq + 1,
            "op": op,
            "caller": caller,
            "args": args,
            "timestamp": timestamp,
            "prevHash": self.last_hash,
        }
        entry["hash"] = ledger_digest(self.last_hash, _payload(entry))

        if self._col is not None:
            # insert_one mutates its argument (adds _id)
            self._col.insert_one(dict(entry))

        self.last_seq = entry["seq"]
        self.last_hash = entry["hash"]
        return entry

    def read_after(self, seq: int) -> Iterator[Dict[str, Any]]:
        """
        Yields stored entries with seq > `seq` in order, verifying the chain
        against the current head as it goes. The head advances per entry, so
        callers must apply each entry before pulling the next one.
        """
        if self._col is None:
            return

        cursor = self._col.find({"seq": {"$gt": seq}}).sort([("seq", 1)])
        for doc in cursor:
            expected_seq = self.last_seq + 1
            if doc.get("seq") != expected_seq:
                raise LedgerIntegrityError(f"gap in command log: expected seq {expected_seq}, got {doc.get('seq')}")
            if doc.get("prevHash") != self.last_hash:
                raise LedgerIntegrityError(f"broken hash chain at seq {expected_seq}")
            if ledger_digest(self.last_hash, _payload(doc)) != doc.get("hash"):
                raise LedgerIntegrityError(f"hash mismatch at seq {expected_seq}")

            self.last_seq = doc["seq"]
            self.last_hash = doc["hash"]
            yield doc

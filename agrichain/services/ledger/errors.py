# agrichain/services/ledger/errors.py
"""
Ledger error taxonomy.

Every mutating ledger call either commits completely or raises one of these
(the store rolls back first). Routes map `http_status` / `code` straight into
the JSON error body.
"""
from __future__ import annotations


class LedgerError(Exception):
    code = "ledger_error"
    http_status = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self):
        return {"ok": False, "err": self.code, "message": self.message}


class Unauthorized(LedgerError):
    code = "unauthorized"
    http_status = 403


class InvalidState(LedgerError):
    code = "invalid_state"
    http_status = 409


class NotInTransit(InvalidState):
    code = "not_in_transit"


class InsufficientQuantity(LedgerError):
    code = "insufficient_quantity"
    http_status = 409


class AlreadyRegistered(LedgerError):
    code = "already_registered"
    http_status = 409


class InvalidDestination(LedgerError):
    code = "invalid_destination"
    http_status = 422


class NotFound(LedgerError):
    code = "not_found"
    http_status = 404


class InvalidArgument(LedgerError):
    code = "invalid_argument"
    http_status = 400


class LedgerIntegrityError(LedgerError):
    """Durable command log failed hash-chain verification during replay."""
    code = "ledger_integrity"
    http_status = 500


class StaleLedgerHead(LedgerError):
    """Another writer appended to the command log first; state has been caught up, retry."""
    code = "stale_head"
    http_status = 409


__all__ = [
    "LedgerError",
    "Unauthorized",
    "InvalidState",
    "NotInTransit",
    "InsufficientQuantity",
    "AlreadyRegistered",
    "InvalidDestination",
    "NotFound",
    "InvalidArgument",
    "LedgerIntegrityError",
    "StaleLedgerHead",
]

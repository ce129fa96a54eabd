# agrichain/mongo_safe.py
"""
Collection lookup with an in-memory fallback.

The ledger and the actor directory ask for their Mongo collections here
("ledger_commands" for the command log, "users" for directory profiles).
A None answer means "no Mongo": the ledger then keeps its state in process
memory only, and the directory serves empty results.
"""
from __future__ import annotations

import logging
import os
from typing import Any, Optional

logger = logging.getLogger(__name__)

# warn once per process, not on every directory lookup
_WARNED = False


def is_mongo_enabled() -> bool:
    """DISABLE_MONGO=1 forces the in-memory ledger (tests, local demos)."""
    return os.getenv("DISABLE_MONGO", "0") != "1"


def _warn_once(msg: str, *args: Any) -> None:
    global _WARNED
    if not _WARNED:
        _WARNED = True
        logger.warning(msg, *args)


def get_db() -> Optional[Any]:
    """
    The Flask-PyMongo database, or None when Mongo is disabled, MONGO_URI is
    unset or init_mongo() failed.
    """
    if not is_mongo_enabled():
        return None

    try:
        from agrichain.mongo import mongo  # Flask-PyMongo instance
    except ImportError as e:
        _warn_once("Mongo driver unavailable, ledger runs in memory: %s", e)
        return None

    db = getattr(mongo, "db", None)
    if db is None:
        _warn_once("Mongo enabled but not initialized; ledger runs in memory and the directory is empty")
    return db


def get_col(name: str) -> Optional[Any]:
    """
    Collection `name` (e.g. the ledger command log), or None for in-memory mode.

    An invalid collection name raises instead of falling back: silently
    dropping to memory would lose every later ledger command on restart.
    """
    db = get_db()
    if db is None:
        return None
    return db[name]

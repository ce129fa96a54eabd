# agrichain/mongo.py
from __future__ import annotations

import os
from flask_pymongo import PyMongo

mongo = PyMongo()

# fail fast on boot instead of hanging on the default 30s server selection
SERVER_SELECTION_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))


def init_mongo(app):
    """
    Initializes Flask-PyMongo for the ledger command log and the user directory.
    Requires app.config["MONGO_URI"] or env var MONGO_URI.
    Call before init_ledger(): the ledger replays its log from here on boot.
    """
    uri = app.config.get("MONGO_URI") or os.getenv("MONGO_URI")
    if not uri:
        print("⚠️ MONGO_URI not set. Ledger will run in memory.")
        return mongo
    app.config["MONGO_URI"] = uri

    try:
        mongo.init_app(app, serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS)
        mongo.cx.admin.command("ping")
        print(f"✅ Mongo initialized (db={getattr(mongo.db, 'name', None)})")
    except Exception as e:
        # the ledger refuses to boot on an unreachable log; surface why first
        print(f"⚠️ Mongo init failed: {e}")

    return mongo

# agrichain/app_config.py

import os


def load_config(app):
    """
    Load all Flask configuration in a clean centralized way.
    """
    # ------------------------------
    # Mongo
    # ------------------------------
    app.config["MONGO_URI"] = os.getenv(
        "MONGO_URI",
        "mongodb://localhost:27017/agrichain_db"
    )
    app.config["DISABLE_MONGO"] = os.getenv("DISABLE_MONGO", "0") == "1"

    # ------------------------------
    # Ledger
    # ------------------------------
    app.config["LEDGER_LOG_COLLECTION"] = os.getenv("LEDGER_LOG_COLLECTION", "ledger_commands")
    app.config["ACTOR_COLLECTION"] = os.getenv("ACTOR_COLLECTION", "users")

    # Base URL encoded into product QR codes
    app.config["PUBLIC_BASE_URL"] = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000").rstrip("/")

    # ------------------------------
    # Security Keys
    # ------------------------------
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", os.urandom(24))
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET_KEY", "change-me")

    print("✓ Config Loaded Successfully")

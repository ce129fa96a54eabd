# app.py

import logging
import os
from datetime import timedelta

from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager

from agrichain.app_config import load_config
from agrichain.mongo import init_mongo
from agrichain.register_blueprints import register_all_blueprints
from agrichain.services.ledger.ledger_service import init_ledger


def create_app(config_overrides=None):
    app = Flask(__name__)

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # -------------------------
    # Config & security
    # -------------------------
    load_config(app)
    if config_overrides:
        app.config.update(config_overrides)
    app.secret_key = app.config["SECRET_KEY"]

    CORS(app, resources={r"/*": {"origins": "*"}})

    # -------------------------
    # Mongo (command log + actor directory)
    # -------------------------
    if app.config.get("DISABLE_MONGO"):
        print("⚠️ Mongo disabled by DISABLE_MONGO=1, ledger runs in memory")
    else:
        init_mongo(app)
        print("✅ Mongo init attempted")

    # -------------------------
    # JWT
    # -------------------------
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(hours=6)
    app.config["JWT_TOKEN_LOCATION"] = ["headers"]
    app.config["JWT_HEADER_TYPE"] = "Bearer"
    JWTManager(app)

    # -------------------------
    # Ledger (rebuilt from the command log on boot)
    # -------------------------
    if "LEDGER" not in app.config:
        init_ledger(app)

    # -------------------------
    # Blueprints
    # -------------------------
    register_all_blueprints(app)

    return app


# gunicorn entry point: gunicorn app:app
app = create_app()


# Local run only
if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)

# agrichain/routes/root/root_routes.py

import time

from flask import Blueprint, jsonify

from agrichain.services.ledger.ledger_service import get_ledger

# Root blueprint
root_bp = Blueprint("root", __name__)


@root_bp.get("/health")
def health():
    ledger = get_ledger()
    return jsonify(
        ok=True,
        service="agrichain-ledger",
        ts=int(time.time()),
        headSeq=ledger.head_seq,
        productCounter=ledger.product_counter(),
    )

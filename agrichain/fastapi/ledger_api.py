# agrichain/fastapi/ledger_api.py
# Read-only mobile API over the ledger. Writes go through the Flask app; this
# process follows the shared command log and replays new entries before reads.
from __future__ import annotations

import os
import threading
from typing import Any, Dict, Optional

import jwt
from fastapi import APIRouter, Depends, HTTPException, Query, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo import MongoClient

from agrichain.models.ledger.ledger_models import ProductState
from agrichain.services.ledger.errors import LedgerError
from agrichain.services.ledger.ledger_service import LedgerService
from agrichain.services.traceability.traceability_services import TraceabilityService

# ------------ Mongo / JWT (must match Flask) ------------
MONGO_URI = os.environ.get("MONGO_URI", "mongodb://localhost:27017/agrichain_db")
JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "change-me")
LEDGER_LOG_COLLECTION = os.environ.get("LEDGER_LOG_COLLECTION", "ledger_commands")
PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "http://localhost:3000")

router = APIRouter(prefix="/api/v1/ledger", tags=["ledger"])

bearer = HTTPBearer(scheme_name="AccessToken", bearerFormat="JWT", auto_error=False)

_ledger: Optional[LedgerService] = None
_ledger_lock = threading.Lock()


# ------------ Ledger dependency ------------
def get_ledger() -> LedgerService:
    """Process-wide follower ledger, caught up with the command log on every call."""
    global _ledger
    with _ledger_lock:
        if _ledger is None:
            if os.environ.get("DISABLE_MONGO", "0") == "1":
                _ledger = LedgerService()
            else:
                db = MongoClient(MONGO_URI).get_database()
                _ledger = LedgerService(log_collection=db[LEDGER_LOG_COLLECTION])
    _ledger.sync()
    return _ledger


# ------------ JWT helpers ------------
def _jwt_decode(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def auth_wallet(credentials: HTTPAuthorizationCredentials = Security(bearer)) -> str:
    if not credentials or (credentials.scheme or "").lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")

    payload = _jwt_decode(credentials.credentials.strip())
    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Not an access token")

    wallet = payload.get("sub")
    if not isinstance(wallet, str) or not wallet:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return wallet


def _raise_http(e: LedgerError):
    raise HTTPException(status_code=e.http_status, detail={"err": e.code, "message": e.message})


# ------------ Routes ------------
@router.get("/products/counter")
def product_counter(ledger: LedgerService = Depends(get_ledger)):
    return {"ok": True, "productCounter": ledger.product_counter()}


@router.get("/products/{product_id}")
def get_product(product_id: int, ledger: LedgerService = Depends(get_ledger)):
    return {"ok": True, "product": ledger.get_product(product_id).to_dict()}


@router.get("/products")
def list_products(
    owner: Optional[str] = Query(None),
    state: Optional[int] = Query(None, ge=0, le=7),
    inStock: bool = Query(False),
    ledger: LedgerService = Depends(get_ledger),
):
    try:
        items = ledger.list_products(
            owner=owner,
            state=ProductState(state) if state is not None else None,
            in_stock_only=inStock,
        )
    except LedgerError as e:
        _raise_http(e)
    return {"ok": True, "items": [p.to_dict() for p in items]}


@router.get("/products/{product_id}/lineage")
def product_lineage(product_id: int, ledger: LedgerService = Depends(get_ledger)):
    vm = TraceabilityService.build_lineage(ledger, product_id, public_base_url=PUBLIC_BASE_URL)
    if vm is None:
        raise HTTPException(status_code=404, detail=f"Product with ID #{product_id} not found.")
    return {"ok": True, "data": vm.to_dict()}


@router.get("/actors/{address}")
def actor_profile(address: str, ledger: LedgerService = Depends(get_ledger)):
    try:
        actor = ledger.get_actor_profile(address)
    except LedgerError as e:
        _raise_http(e)
    return {"ok": True, "actor": actor.to_dict()}


@router.get("/me/inventory")
def my_inventory(wallet: str = Depends(auth_wallet), ledger: LedgerService = Depends(get_ledger)):
    try:
        items = ledger.list_products(owner=wallet, in_stock_only=True)
    except LedgerError as e:
        _raise_http(e)
    # in-transit children are still owned by the shipper but are not stock
    items = [p for p in items if p.current_state != ProductState.IN_TRANSIT and not p.current_state.is_terminal]
    return {"ok": True, "items": [p.to_dict() for p in items]}


@router.get("/me/incoming")
def my_incoming(wallet: str = Depends(auth_wallet), ledger: LedgerService = Depends(get_ledger)):
    try:
        items = ledger.incoming_shipments(wallet)
    except LedgerError as e:
        _raise_http(e)
    return {"ok": True, "items": [p.to_dict() for p in items]}

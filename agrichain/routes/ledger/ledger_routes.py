# agrichain/routes/ledger/ledger_routes.py

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from pydantic import ValidationError

from agrichain.models.ledger.ledger_models import ProductState
from agrichain.models.ledger.request_models import (
    AddFarmRequest,
    ClaimRoleRequest,
    CreateProductRequest,
    ProcessRequest,
    RecipeRequest,
    SellRequest,
    ShipRequest,
)
from agrichain.services.ledger.errors import InvalidArgument, LedgerError
from agrichain.services.ledger.ledger_service import get_ledger

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")

# URL slug -> role-bound claim entry point (farms are added by an admin)
CLAIM_SLUGS = {
    "admin": "claimAdminRole",
    "collection-point": "claimCollectionPointRole",
    "warehouse": "claimWarehouseRole",
    "processing-unit": "claimProcessingUnitRole",
    "retailer": "claimRetailerRole",
}


# ---------------------------------------------------------
# Error mapping
# ---------------------------------------------------------
@ledger_bp.errorhandler(LedgerError)
def _ledger_error(e: LedgerError):
    return jsonify(e.to_dict()), e.http_status


@ledger_bp.errorhandler(ValidationError)
def _validation_error(e: ValidationError):
    return jsonify({"ok": False, "err": "invalid_argument", "message": e.errors(include_url=False, include_context=False)}), 400


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _caller() -> str:
    return get_jwt_identity()


# ---------------------------------------------------------
# Actors
# ---------------------------------------------------------
@ledger_bp.post("/actors/claim/<slug>")
@jwt_required()
def claim_role(slug: str):
    entry_point = CLAIM_SLUGS.get(slug)
    if entry_point is None:
        return jsonify({"ok": False, "err": "not_found", "message": f"unknown role {slug}"}), 404

    payload = ClaimRoleRequest(**_body())
    actor = get_ledger().claim(entry_point, _caller(), payload.name, payload.phone, payload.location or "")
    return jsonify({"ok": True, "actor": actor.to_dict()}), 201


@ledger_bp.post("/actors/farms")
@jwt_required()
def add_farm():
    """Admin approval step: registers an approved farm's wallet on the ledger."""
    payload = AddFarmRequest(**_body())
    actor = get_ledger().add_farm_and_profile(
        _caller(), payload.farmAddress, payload.name, payload.phone, payload.location or ""
    )
    return jsonify({"ok": True, "actor": actor.to_dict()}), 201


@ledger_bp.get("/actors/<address>")
def actor_profile(address: str):
    return jsonify({"ok": True, "actor": get_ledger().get_actor_profile(address).to_dict()})


# ---------------------------------------------------------
# Product writes
# ---------------------------------------------------------
@ledger_bp.post("/products")
@jwt_required()
def create_product():
    payload = CreateProductRequest(**_body())
    product = get_ledger().create_product(_caller(), payload.name, payload.quantity, payload.unit)
    return jsonify({"ok": True, "product": product.to_dict()}), 201


@ledger_bp.post("/products/<int:product_id>/ship")
@jwt_required()
def ship_product(product_id: int):
    payload = ShipRequest(**_body())
    child = get_ledger().split_and_ship(_caller(), product_id, payload.quantity, payload.destinationAddress)
    return jsonify({"ok": True, "product": child.to_dict()}), 201


@ledger_bp.post("/products/<int:product_id>/receive")
@jwt_required()
def receive_product(product_id: int):
    product = get_ledger().receive_product(_caller(), product_id)
    return jsonify({"ok": True, "product": product.to_dict()})


@ledger_bp.post("/products/<int:product_id>/process")
@jwt_required()
def process_product(product_id: int):
    payload = ProcessRequest(**_body())
    output = get_ledger().process_product(
        _caller(),
        product_id,
        payload.quantityToProcess,
        payload.newName,
        payload.newQuantity,
        payload.newUnit,
    )
    return jsonify({"ok": True, "product": output.to_dict()}), 201


@ledger_bp.post("/products/recipe")
@jwt_required()
def process_with_recipe():
    payload = RecipeRequest(**_body())
    output = get_ledger().process_with_recipe(
        _caller(),
        payload.ingredientIds,
        payload.quantitiesToUse,
        payload.outputName,
        payload.outputQuantity,
        payload.outputUnit,
    )
    return jsonify({"ok": True, "product": output.to_dict()}), 201


@ledger_bp.post("/products/<int:product_id>/sell")
@jwt_required()
def sell_product(product_id: int):
    payload = SellRequest(**_body())
    sold = get_ledger().sell_product(_caller(), product_id, payload.quantity)
    stock = get_ledger().get_product(product_id)
    return jsonify({"ok": True, "sold": sold.to_dict(), "product": stock.to_dict()}), 201


# ---------------------------------------------------------
# Product reads
# ---------------------------------------------------------
@ledger_bp.get("/products/counter")
def product_counter():
    return jsonify({"ok": True, "productCounter": get_ledger().product_counter()})


@ledger_bp.get("/products/<int:product_id>")
def get_product(product_id: int):
    # unknown ids return the zero-value record, not a 404
    return jsonify({"ok": True, "product": get_ledger().get_product(product_id).to_dict()})


@ledger_bp.get("/products")
def list_products():
    """
    GET /api/ledger/products?owner=0x..&state=4&destination=0x..&inStock=1
    """
    owner = (request.args.get("owner") or "").strip() or None
    destination = (request.args.get("destination") or "").strip() or None
    state = None
    raw_state = (request.args.get("state") or "").strip()
    if raw_state:
        try:
            state = ProductState(int(raw_state))
        except ValueError:
            raise InvalidArgument(f"unknown state {raw_state}")
    in_stock = request.args.get("inStock", "0") == "1"

    items = get_ledger().list_products(owner=owner, state=state, destination=destination, in_stock_only=in_stock)
    return jsonify({"ok": True, "items": [p.to_dict() for p in items]})


@ledger_bp.get("/incoming")
@jwt_required()
def incoming():
    items = get_ledger().incoming_shipments(_caller())
    return jsonify({"ok": True, "items": [p.to_dict() for p in items]})


@ledger_bp.get("/shipped")
@jwt_required()
def shipped():
    items = get_ledger().shipped_by(_caller())
    return jsonify({"ok": True, "items": [p.to_dict() for p in items]})

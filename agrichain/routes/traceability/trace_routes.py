# agrichain/routes/traceability/trace_routes.py
from flask import Blueprint, current_app, jsonify, send_file

from agrichain.services.ledger.ledger_service import get_ledger
from agrichain.services.traceability.traceability_services import TraceabilityService

traceability_bp = Blueprint("traceability_bp", __name__, url_prefix="/api/trace")


# ------------------------------
# API (JSON), public, no auth
# ------------------------------
@traceability_bp.get("/<int:product_id>")
def traceability_api(product_id: int):
    """
    GET /api/trace/<id>
    Full journey: own history + ancestors + recipe ingredients.
    """
    vm = TraceabilityService.build_lineage(
        get_ledger(),
        product_id,
        public_base_url=current_app.config.get("PUBLIC_BASE_URL", ""),
    )
    if vm is None:
        return jsonify(ok=False, err="not_found", message=f"Product with ID #{product_id} not found."), 404

    return jsonify(ok=True, data=vm.to_dict())


@traceability_bp.get("/<int:product_id>/qr")
def product_qr(product_id: int):
    """
    Returns a QR code PNG encoding the public scan URL for this product.
    """
    if not get_ledger().get_product(product_id).exists:
        return jsonify(ok=False, err="not_found"), 404

    buf = TraceabilityService.qr_png(current_app.config.get("PUBLIC_BASE_URL", ""), product_id)
    return send_file(
        buf,
        mimetype="image/png",
        as_attachment=True,
        download_name=f"product_{product_id}_qr.png",
    )

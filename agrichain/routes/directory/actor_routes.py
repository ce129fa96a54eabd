# agrichain/routes/directory/actor_routes.py

from flask import Blueprint, current_app, jsonify, request

from agrichain.services.directory.actor_directory import ActorDirectory

actors_bp = Blueprint("actors", __name__, url_prefix="/api/actors")


@actors_bp.get("")
def list_actors():
    """
    GET /api/actors?role=Warehouse&q=green
    Off-chain users that can receive shipments (wallet required).
    """
    directory = ActorDirectory(current_app.config.get("ACTOR_COLLECTION", "users"))
    role = (request.args.get("role") or "").strip() or None
    q = (request.args.get("q") or "").strip()
    return jsonify({"actors": directory.list_shippable(role=role, search=q)})


@actors_bp.get("/resolve")
def resolve_actor():
    directory = ActorDirectory(current_app.config.get("ACTOR_COLLECTION", "users"))
    role = (request.args.get("role") or "").strip()
    name = (request.args.get("name") or "").strip()
    if not role or not name:
        return jsonify(ok=False, err="role and name required"), 400

    wallet = directory.resolve(role, name)
    if not wallet:
        return jsonify(ok=False, err="not_found"), 404
    return jsonify(ok=True, wallet=wallet)

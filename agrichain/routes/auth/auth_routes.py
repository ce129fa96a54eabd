# agrichain/routes/auth/auth_routes.py

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token, get_jwt_identity, jwt_required
from pydantic import ValidationError

from agrichain.models.ledger.request_models import WalletSigninRequest
from agrichain.services.auth.wallet_auth import WalletAuthError, WalletAuthService
from agrichain.services.ledger.ledger_service import get_ledger

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _wallet_auth() -> WalletAuthService:
    svc = current_app.config.get("WALLET_AUTH")
    if svc is None:
        svc = current_app.config["WALLET_AUTH"] = WalletAuthService()
    return svc


@auth_bp.get("/nonce")
def nonce():
    wallet = (request.args.get("wallet") or "").strip()
    try:
        message = _wallet_auth().issue_challenge(wallet)
    except WalletAuthError as e:
        return jsonify(ok=False, err=str(e)), 400
    return jsonify(ok=True, message=message)


@auth_bp.post("/wallet-signin")
def wallet_signin():
    try:
        payload = WalletSigninRequest(**(request.get_json(silent=True) or {}))
    except ValidationError as e:
        return jsonify(ok=False, err="invalid_argument", message=e.errors(include_url=False, include_context=False)), 400

    try:
        wallet = _wallet_auth().verify(payload.wallet, payload.signature)
    except WalletAuthError as e:
        return jsonify(ok=False, err=str(e)), 401

    profile = get_ledger().get_actor_profile(wallet)
    token = create_access_token(
        identity=wallet,
        additional_claims={"role": int(profile.role), "name": profile.name},
    )
    return jsonify(ok=True, access_token=token, actor=profile.to_dict())


@auth_bp.get("/me")
@jwt_required()
def me():
    wallet = get_jwt_identity()
    return jsonify(ok=True, actor=get_ledger().get_actor_profile(wallet).to_dict())

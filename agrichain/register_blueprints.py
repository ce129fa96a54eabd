"""
Centralized Blueprint Registration
All blueprints MUST be registered inside register_all_blueprints(app)
"""


def register_all_blueprints(app):

    # Root
    from agrichain.routes.root.root_routes import root_bp
    app.register_blueprint(root_bp)

    # Auth (wallet sign-in)
    from agrichain.routes.auth.auth_routes import auth_bp
    app.register_blueprint(auth_bp)

    # Ledger (actors, products, custody transfers, processing, sales)
    from agrichain.routes.ledger.ledger_routes import ledger_bp
    app.register_blueprint(ledger_bp)

    # Off-chain actor directory
    from agrichain.routes.directory.actor_routes import actors_bp
    app.register_blueprint(actors_bp)

    # Traceability
    from agrichain.routes.traceability.trace_routes import traceability_bp
    app.register_blueprint(traceability_bp)

    print("✓ All blueprints registered")

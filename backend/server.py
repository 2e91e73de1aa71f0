"""
Flask application entry point for the carecycle backend.

Registers auth, schedule lifecycle, and invitation routes, plus the
`flask --app server auto-hold` maintenance command.
"""

import logging

from flask import Flask

from carecycle.config import config
from carecycle.routes.auth import bp as auth_bp
from carecycle.api.schedules import schedules_bp
from carecycle.api.invitations import invitations_bp
from carecycle.db.postgres import close_db_session, rollback_session, get_db_session


def create_app(init_database: bool = False):
    """Create and configure Flask app."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = Flask(__name__)

    # Load config
    app.config["SECRET_KEY"] = config.SECRET_KEY
    app.config["DEBUG"] = config.DEBUG

    @app.after_request
    def after_request(response):
        response.headers.add("Access-Control-Allow-Origin", "*")
        response.headers.add("Access-Control-Allow-Headers", "Content-Type,Authorization")
        response.headers.add("Access-Control-Allow-Methods", "GET,PUT,POST,DELETE,OPTIONS")
        return response

    # Ensure clean session state at the start of each request
    @app.before_request
    def ensure_clean_session():
        rollback_session()

    # Clean up database session at the end of each request
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        close_db_session(exception)

    # Register blueprints
    app.register_blueprint(auth_bp)         # /api/v1/auth/login, /api/v1/auth/me
    app.register_blueprint(schedules_bp)    # /api/v1/schedules/*
    app.register_blueprint(invitations_bp)  # /api/v1/admin/invitations/*, invitation verify/signup

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok", "database_mode": config.DATABASE_MODE}

    @app.cli.command("auto-hold")
    def auto_hold_command():
        """Pause schedules overdue beyond each organization's policy."""
        from carecycle.services.auto_hold import AutoHoldService, SqlPolicySource
        from carecycle.services.schedule_state_manager import get_schedule_state_manager

        with get_db_session() as db:
            service = AutoHoldService(get_schedule_state_manager(db), SqlPolicySource(db))
            result = service.run()
        print(f"[carecycle] Auto-hold: {result.to_dict()}")

    # Initialize database tables if requested (development only)
    if init_database:
        with app.app_context():
            from carecycle.db.postgres import init_db
            init_db()
            print("[carecycle] Database tables initialized")

    return app


if __name__ == "__main__":
    app = create_app(init_database=False)
    print(f"[carecycle] Starting server on port 5001...")
    print(f"[carecycle] Database mode: {config.DATABASE_MODE}")
    print(f"[carecycle] Debug mode: {config.DEBUG}")
    print(f"[carecycle] Routes:")
    print(f"  - /api/v1/auth/* (Authentication, invitation verify/signup)")
    print(f"  - /api/v1/schedules/* (Schedule lifecycle and checklist)")
    print(f"  - /api/v1/admin/invitations/* (Invitation administration)")
    print(f"  - /health (Health check)")
    app.run(debug=config.DEBUG, port=5001)

import logging
import os

import click
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from config import (
    FLASK_SECRET_KEY,
    LOG_LEVEL,
    MAX_CONTENT_LENGTH,
    SEED_DEMO_DATA,
    SQLALCHEMY_DATABASE_URI,
    STORAGE_BACKEND,
)
from demo_data import seed_demo
from errors import ApiError, InternalError
from models import db
from storage import MemStorage, Storage

logger = logging.getLogger(__name__)


def _build_storage(app: Flask) -> Storage:
    backend = app.config["STORAGE_BACKEND"]
    if backend == "memory":
        return MemStorage()
    if backend == "sql":
        from sql_storage import SqlStorage

        if not app.config.get("SQLALCHEMY_DATABASE_URI"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite:///" + os.path.join(app.instance_path, "sheets.db")
        app.config.setdefault("SQLALCHEMY_TRACK_MODIFICATIONS", False)
        db.init_app(app)
        return SqlStorage()
    raise ValueError(f"Unknown STORAGE_BACKEND {backend!r} (expected 'memory' or 'sql')")


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def handle_api_error(err):
        if err.status_code >= 500:
            app.logger.error("%s %s failed: %s", request.method, request.path, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(err):
        limit_mb = app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
        return jsonify({"message": f"File too large (max {limit_mb}MB)"}), 413

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify({"message": err.description or err.name}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify(InternalError("Internal server error").to_dict()), 500


def _register_cli(app: Flask) -> None:
    @app.cli.command("init-db")
    def init_db_command():
        """Create the database tables (SQL backend only)."""
        storage = app.extensions["storage"]
        if not hasattr(storage, "create_all"):
            click.echo("Memory backend in use; nothing to create.")
            return
        storage.create_all()
        click.echo("✅ tables created.")

    @app.cli.command("seed-demo")
    def seed_demo_command():
        """Insert the demo sheets and setlist."""
        created = seed_demo(app.extensions["storage"])
        click.echo(f"✅ seeded {created} sheets.")


def create_app(overrides: dict | None = None, storage: Storage | None = None) -> Flask:
    app = Flask(__name__)

    app.config["SECRET_KEY"] = FLASK_SECRET_KEY
    app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH
    app.config["STORAGE_BACKEND"] = STORAGE_BACKEND
    app.config["SQLALCHEMY_DATABASE_URI"] = SQLALCHEMY_DATABASE_URI
    app.config["SEED_DEMO_DATA"] = SEED_DEMO_DATA
    app.config.update(overrides or {})
    app.url_map.strict_slashes = False

    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if storage is None:
        storage = _build_storage(app)
    app.extensions["storage"] = storage

    from routes.sheets import sheets_bp
    from routes.setlists import setlists_bp
    from routes.settings import settings_bp

    app.register_blueprint(sheets_bp)
    app.register_blueprint(setlists_bp)
    app.register_blueprint(settings_bp)

    _register_error_handlers(app)
    _register_cli(app)

    @app.get("/healthz")
    def healthz():
        # never crash health
        ok = app.extensions["storage"].healthy()
        return (f"ok | store={storage.name} {'up' if ok else 'down'}", 200)

    with app.app_context():
        if hasattr(storage, "create_all"):
            storage.create_all()
        storage.ensure_default_user()
        if app.config["SEED_DEMO_DATA"] and not storage.list_sheet_music():
            seed_demo(storage)

    logger.info("app ready (store=%s)", storage.name)
    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5055)

"""Flask application factory."""

from __future__ import annotations

from pathlib import Path

from flask import Flask, Response, jsonify, request, send_from_directory
from flask_cors import CORS

from api.routes import api_bp
from config import settings

_NO_FRONTEND_MESSAGE = (
    "Dashboard frontend not found. Set FRONTEND_DIST to the directory "
    "holding the built dashboard (index.html and assets)."
)


def create_app() -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.flask_secret_key

    CORS(app, origins=settings.cors_origins)

    app.register_blueprint(api_bp)

    dist = Path(settings.frontend_dist) if settings.frontend_dist else None

    @app.route("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.errorhandler(404)
    def not_found(e):
        if request.path.startswith("/api/"):
            return jsonify({"error": "Not found"}), 404
        return _spa_index(dist)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    # SPA catch-all for the dashboard bundle at FRONTEND_DIST
    @app.route("/", defaults={"path": ""})
    @app.route("/<path:path>")
    def serve_spa(path: str) -> Response:
        if path.startswith("api/"):
            return jsonify({"error": "Not found"}), 404
        if dist is not None and path and (dist / path).is_file():
            return send_from_directory(str(dist), path)
        return _spa_index(dist)

    return app


def _spa_index(dist: Path | None):
    if dist is not None and (dist / "index.html").is_file():
        return send_from_directory(str(dist), "index.html")
    resp = jsonify(message=_NO_FRONTEND_MESSAGE)
    resp.status_code = 404
    return resp

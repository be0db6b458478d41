import hmac
import logging
from datetime import datetime, timezone
from functools import wraps

from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS

from config import Config
import gpt_service
from errors import error_response, internal_error, not_found_error, unauthorized_error, validation_error
from journal_service import JournalService
from logging_config import setup_logging
from models import db
from storage import build_store

logger = logging.getLogger(__name__)

bp = Blueprint("journal", __name__)


def create_app(overrides=None):
    """Application factory; ``overrides`` replaces Config values (tests)."""
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    setup_logging(app.config["LOG_LEVEL"])
    gpt_service.configure(app.config)

    # --- CORS (allow your deployed frontend origin if provided) ---
    frontend_origin = app.config.get("FRONTEND_ORIGIN")
    if frontend_origin:
        CORS(app, resources={r"/*": {"origins": [frontend_origin]}})
    else:
        # Dev fallback: allow all (ok for local dev; tighten for prod)
        CORS(app)

    # One store per app, handed to the service explicitly
    store = build_store(app)
    service = JournalService(store, admin_email=app.config["ADMIN_EMAIL"])
    with app.app_context():
        service.ensure_admin()

    app.extensions["journal_store"] = store
    app.extensions["journal_service"] = service

    app.register_blueprint(bp)
    _register_error_handlers(app)

    logger.info("Journal service ready (storage=%s)", store.backend_name)
    return app


def _register_error_handlers(app):
    @app.errorhandler(404)
    def handle_404(e):
        return not_found_error()

    @app.errorhandler(405)
    def handle_405(e):
        return error_response({"form": ["Method not allowed."]}, 405)

    @app.errorhandler(500)
    def handle_500(e):
        logger.exception("Unhandled error: %s", e)
        return internal_error()


# ---------- Helpers ----------

def service() -> JournalService:
    return current_app.extensions["journal_service"]


def respond(result):
    """Turn an ActionResult into a JSON response."""
    if result.success:
        return jsonify(result.to_dict()), result.status
    return error_response(result.error, result.status)


def current_user_id():
    """Acting user from the X-User-Id header, or None."""
    raw = request.headers.get("X-User-Id")
    try:
        return int(raw) if raw is not None else None
    except ValueError:
        return None


def require_user(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user_id = current_user_id()
        if user_id is None:
            return validation_error("user_id", "X-User-Id header is required.")
        return view(user_id, *args, **kwargs)
    return wrapper


def require_admin(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        supplied = request.headers.get("X-Admin-Passcode", "")
        expected = current_app.config["ADMIN_PASSCODE"]
        if not hmac.compare_digest(supplied.encode(), expected.encode()):
            return unauthorized_error()
        return view(*args, **kwargs)
    return wrapper


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def year_arg():
    return request.args.get("year", type=int)


# ---------- Routes ----------

@bp.route("/health")
def health():
    """Simple health check + storage connectivity test."""
    store = current_app.extensions["journal_store"]
    db_ok = True
    if store.backend_name == "sql":
        try:
            with db.engine.connect() as conn:
                conn.execute(db.text("SELECT 1"))
        except Exception:
            db_ok = False
    return jsonify({
        "ok": True,
        "storage": store.backend_name,
        "db_ok": db_ok,
        "model": current_app.config["OPENROUTER_MODEL"],
        "time": datetime.now(timezone.utc).isoformat(),
    }), 200


@bp.route("/entries", methods=["GET"])
@require_user
def list_entries(user_id):
    """List the user's entries (latest first)."""
    return jsonify([e.to_dict() for e in service().get_entries(user_id)]), 200


@bp.route("/entries", methods=["POST"])
@require_user
def create_entry(user_id):
    data = json_body()
    data["user_id"] = user_id
    return respond(service().add_entry(data))


@bp.route("/entries/<entry_id>", methods=["PUT"])
@require_user
def edit_entry(user_id, entry_id):
    data = json_body()
    data["id"] = entry_id
    data["user_id"] = user_id
    return respond(service().update_entry(data))


@bp.route("/entries/archive", methods=["GET"])
@require_user
def archive(user_id):
    """Entries grouped by week, most recent week first."""
    return jsonify(service().weekly_archive(user_id)), 200


@bp.route("/overview", methods=["GET"])
@require_user
def overview(user_id):
    return jsonify(service().mood_overview(user_id, year_arg())), 200


@bp.route("/inspiration", methods=["GET"])
@require_user
def inspiration(user_id):
    """Past entries with a mood similar to the one being written."""
    mood_score = request.args.get("mood_score", type=int)
    if mood_score is None or not 1 <= mood_score <= 5:
        return validation_error("mood_score", "Mood score must be between 1 and 5.")
    return jsonify({"similar_entries": service().inspiration(user_id, mood_score)}), 200


@bp.route("/adjectives", methods=["GET"])
@require_user
def adjectives(user_id):
    scale = request.args.get("scale", "sqrt")
    if scale not in ("sqrt", "linear"):
        return validation_error("scale", "Scale must be 'sqrt' or 'linear'.")
    return jsonify(service().adjective_cloud(user_id, scale=scale)), 200


@bp.route("/prompt/daily", methods=["GET"])
def daily_prompt():
    return jsonify({"prompt": service().daily_prompt()}), 200


@bp.route("/signup", methods=["POST"])
def signup():
    return respond(service().sign_up(json_body()))


@bp.route("/users", methods=["GET"])
def list_users():
    return jsonify([u.to_dict() for u in service().get_users()]), 200


@bp.route("/settings", methods=["GET"])
def get_settings():
    return jsonify(service().get_settings().to_dict()), 200


# ---------- Admin ----------

@bp.route("/admin/users", methods=["POST"])
@require_admin
def admin_create_user():
    return respond(service().add_user(json_body()))


@bp.route("/admin/users/<int:user_id>", methods=["PUT"])
@require_admin
def admin_update_user(user_id):
    data = json_body()
    data["id"] = user_id
    return respond(service().update_user(data))


@bp.route("/admin/users/<int:user_id>", methods=["DELETE"])
@require_admin
def admin_delete_user(user_id):
    """Delete a user and all of their entries."""
    return respond(service().delete_user(user_id))


@bp.route("/admin/settings", methods=["PUT"])
@require_admin
def admin_update_settings():
    return respond(service().update_settings(json_body()))


@bp.route("/admin/overview", methods=["GET"])
@require_admin
def admin_overview():
    per_user = request.args.get("per_user", "").lower() in ("1", "true", "yes")
    return jsonify(service().admin_mood_overview(year_arg(), per_user=per_user)), 200


if __name__ == "__main__":
    create_app().run(
        host="0.0.0.0",
        port=Config.PORT,
        debug=True
    )

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo
import logging

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS
from flask_jwt_extended import JWTManager, create_access_token, jwt_required, get_jwt_identity
from werkzeug.exceptions import HTTPException

from .config import Config
from .models.db import Database
from .services.activity_service import ActivityLog
from .services.checklist_service import ChecklistService
from .services.errors import AuthError, ChecklistServiceError, ForbiddenError, ValidationError
from .services.item_store import ItemStore
from .services.ledger import DayLedger
from .services.nudge_service import NudgeService
from .services.task_registry import TaskRegistry
from .services.user_service import UserService

EXTENSION_KEY = "ecotrack"


class Services:
    """Every service of one app, all sharing a single initialised Database."""

    def __init__(self, database: Database, tz=None, clock: Optional[Callable[[], datetime]] = None):
        self.database = database
        self.activity = ActivityLog(database)
        self.users = UserService(database, self.activity)
        self.items = ItemStore(database)
        self.tasks = TaskRegistry(database, self.activity)
        self.ledger = DayLedger(database, self.activity, tz=tz, clock=clock or datetime.now)
        self.checklist = ChecklistService(self.ledger, self.items, self.tasks)
        self.nudges = NudgeService(database, self.ledger)


def resolve_timezone(name: Optional[str]):
    return ZoneInfo(name) if name else None


def build_services(config, clock: Optional[Callable[[], datetime]] = None) -> Services:
    """Create and initialise the store, then wire the services onto it."""
    database = Database(config["SQLALCHEMY_DATABASE_URI"], echo=config.get("SQL_ECHO", False))
    database.init()
    return Services(database, tz=resolve_timezone(config.get("ECOTRACK_TIMEZONE")), clock=clock)


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]


def create_app(config_object=None, clock: Optional[Callable[[], datetime]] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    # INFO level, console output
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(message)s')

    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(hours=app.config.get("JWT_ACCESS_TOKEN_HOURS", 24))
    jwt = JWTManager(app)

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        logging.error(f"Invalid Token: {error}")
        return jsonify({"error": "Invalid token", "details": error}), 401

    @jwt.unauthorized_loader
    def missing_token_callback(error):
        logging.error(f"Missing Token: {error}")
        return jsonify({"error": "Request does not contain an access token", "details": error}), 401

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        logging.error(f"Expired Token: {jwt_payload}")
        return jsonify({"error": "Token has expired", "token_expired": True}), 401

    origins = [origin.strip() for origin in str(app.config.get("CORS_ORIGINS", "*")).split(",") if origin.strip()]
    CORS(app,
         resources={r"/*": {"origins": origins or "*"}},
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
         allow_headers=["Content-Type", "Authorization"])

    # the store is fully initialised before any route exists
    app.extensions[EXTENSION_KEY] = build_services(app.config, clock=clock)
    register_routes(app)
    register_error_handlers(app)
    return app


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ChecklistServiceError)
    def handle_service_error(exc):
        if exc.status_code >= 500:
            logging.error("Service failure on %s %s: %s", request.method, request.path, exc)
        return jsonify({"error": exc.message}), exc.status_code

    @app.errorhandler(404)
    def handle_404(e):
        return jsonify({"error": "Route not found"}), 404

    @app.errorhandler(400)
    def handle_400(e):
        return jsonify({"error": "Malformed request"}), 400

    @app.errorhandler(Exception)
    def handle_exception(e):
        if isinstance(e, HTTPException):
            return jsonify({"error": e.description}), e.code
        logging.exception("Unhandled exception: %s", e)
        return jsonify({"error": "Internal server error"}), 500


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _current_user_id(claimed=None) -> int:
    """Resolve the token's user; ``claimed`` (path/body userId) must be that same user."""
    try:
        user_id = int(get_jwt_identity())
    except (TypeError, ValueError) as exc:
        raise AuthError("Invalid user identity") from exc
    if get_services().users.get_user_by_id(user_id) is None:
        raise AuthError("User not found")
    if claimed is not None:
        try:
            claimed_id = int(claimed)
        except (TypeError, ValueError) as exc:
            raise ValidationError("userId must be an integer") from exc
        if claimed_id != user_id:
            raise ForbiddenError("Cannot access another user's checklist")
    return user_id


def register_routes(app: Flask) -> None:
    @app.route("/", methods=["GET"])
    def index() -> tuple:
        return jsonify({"message": "EcoTrack API is running."}), 200

    @app.route("/health", methods=["GET"])
    def health() -> tuple:
        payload = {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": get_services().database.engine.dialect.name,
        }
        return jsonify(payload), 200

    # --- Auth Routes ---
    @app.route("/api/auth/register", methods=["POST"])
    def register():
        data = _json_body()
        username = data.get("username")
        email = data.get("email")
        password = data.get("password")

        if not username or not email or not password:
            return jsonify({"error": "Username, email, and password are required"}), 400

        user = get_services().users.create_user(
            username,
            email,
            password,
            metadata=data.get("metadata"),
            details={"ip": request.remote_addr, "userAgent": request.headers.get("User-Agent")},
        )
        return jsonify({"success": True, "userId": user["id"], "message": "User registered successfully"}), 201

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        data = _json_body()
        username = data.get("username")
        password = data.get("password")
        if not username or not password:
            return jsonify({"error": "Username and password are required"}), 400

        user = get_services().users.authenticate(username, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        access_token = create_access_token(identity=str(user["id"]), additional_claims={"username": user["username"]})
        return jsonify({"success": True, "access_token": access_token, "user": user}), 200

    @app.route("/api/auth/me", methods=["GET"])
    @jwt_required()
    def me():
        user_id = _current_user_id()
        return jsonify(get_services().users.get_user_by_id(user_id)), 200

    @app.route("/api/auth/me", methods=["DELETE"])
    @jwt_required()
    def delete_me():
        user_id = _current_user_id()
        get_services().users.delete_user(user_id)
        return jsonify({"success": True, "message": "User deleted successfully"}), 200

    @app.route("/api/activity", methods=["GET"])
    @jwt_required()
    def list_activity():
        user_id = _current_user_id()
        limit = request.args.get("limit", 10, type=int)
        limit = max(1, min(limit, 100))
        return jsonify(get_services().activity.for_user(user_id, limit)), 200

    # --- Checklist Routes ---
    @app.route("/checklist/today/<int:user_id>", methods=["GET"])
    @jwt_required()
    def today_checklist(user_id: int):
        user_id = _current_user_id(user_id)
        return jsonify(get_services().checklist.get_today_checklist(user_id)), 200

    @app.route("/checklist/actions/<int:user_id>", methods=["GET"])
    @jwt_required()
    def action_catalog(user_id: int):
        user_id = _current_user_id(user_id)
        return jsonify(get_services().checklist.action_catalog(user_id)), 200

    @app.route("/checklist/item", methods=["POST"])
    @jwt_required()
    def toggle_item():
        data = _json_body()
        user_id = _current_user_id(data.get("userId"))
        result = get_services().checklist.toggle_item(user_id, data.get("actionId"), data.get("done"))
        return jsonify({"success": True, **result}), 200

    @app.route("/checklist/checkin", methods=["POST"])
    @jwt_required()
    def check_in():
        data = _json_body()
        user_id = _current_user_id(data.get("userId"))
        result = get_services().checklist.perform_check_in(user_id)
        return jsonify({"success": True, **result}), 200

    @app.route("/checklist/history/<int:user_id>", methods=["GET"])
    @jwt_required()
    def checkin_history(user_id: int):
        user_id = _current_user_id(user_id)
        history = get_services().checklist.history(user_id, request.args.get("limit", 30))
        return jsonify({"history": history}), 200

    @app.route("/checklist/tasks/<int:user_id>", methods=["GET"])
    @jwt_required()
    def list_tasks(user_id: int):
        user_id = _current_user_id(user_id)
        return jsonify({"tasks": get_services().checklist.list_tasks(user_id)}), 200

    @app.route("/checklist/tasks", methods=["POST"])
    @jwt_required()
    def add_task():
        data = _json_body()
        user_id = _current_user_id(data.get("userId"))
        task = get_services().checklist.add_task(user_id, data.get("label"))
        return jsonify({"success": True, "task": task}), 201

    @app.route("/checklist/tasks/<int:user_id>/<action_id>", methods=["DELETE"])
    @jwt_required()
    def remove_task(user_id: int, action_id: str):
        user_id = _current_user_id(user_id)
        get_services().checklist.remove_task(user_id, action_id)
        return jsonify({"success": True}), 200

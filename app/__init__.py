"""Flask application factory"""

from pathlib import Path

from flask import Flask, request, jsonify
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError

from config import set_config_name, get_config
from config.base import (
    CORS_ALLOWED_HEADERS,
    CORS_ALLOWED_METHODS,
    CORS_MAX_AGE_SECONDS,
)

# SQLAlchemy 인스턴스 (다른 모듈에서 import 가능)
db = SQLAlchemy()


def create_app(
    config_name="default",
    db_uri_override: str | None = None,
):
    """
    Flask application factory

    Args:
        config_name: Config profile ('development', 'production', 'testing', 'default')
        db_uri_override: Database URI to use instead of the configured one.

    Returns:
        Flask app instance
    """
    app = Flask(__name__)

    set_config_name(config_name)
    cfg = get_config()

    app.config["ENV_NAME"] = config_name
    app.config["TESTING"] = config_name == "testing"
    app.config["SECRET_KEY"] = cfg.secret_key
    app.config["SQLALCHEMY_DATABASE_URI"] = db_uri_override or cfg.runtime.db_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["MAX_CONTENT_LENGTH"] = cfg.runtime.max_content_length
    app.config["ALLOWED_EXTENSIONS"] = cfg.runtime.allowed_extensions
    app.config["DB_READ_ONLY"] = cfg.runtime.db_read_only
    app.config["CORS_ALLOWED_ORIGINS"] = cfg.runtime.cors_allowed_origins

    app.config["GEMINI_API_KEY"] = cfg.ai.gemini_api_key
    app.config["GEMINI_MODEL_NAME"] = cfg.ai.gemini_model_name
    app.config["GEMINI_MAX_OUTPUT_TOKENS"] = cfg.ai.gemini_max_output_tokens
    app.config["AI_CONTEXT_MAX_CHARS"] = cfg.ai.context_max_chars
    app.config["AI_GENERATION_TEMPERATURE"] = cfg.ai.generation_temperature
    app.config["AI_GRADING_TEMPERATURE"] = cfg.ai.grading_temperature
    app.config["AI_RETRY_ATTEMPTS"] = cfg.ai.retry_attempts

    if cfg.is_production and cfg.secret_key == "dev-secret-key-change-in-production":
        app.logger.warning("SECRET_KEY is not set; using the development default.")

    # data 디렉토리 생성 (SQLite DB용)
    db_uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if db_uri.startswith("sqlite:///"):
        Path(db_uri[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    # SQLAlchemy 초기화
    db.init_app(app)

    from app import models  # noqa: F401  (register tables)

    if cfg.runtime.auto_create_db:
        with app.app_context():
            db.create_all()

    # Blueprint 등록
    from app.routes.api_import import api_import_bp
    from app.routes.api_classes import api_classes_bp
    from app.routes.api_exams import api_exams_bp
    from app.routes.api_assignments import api_assignments_bp
    from app.routes.ai import ai_bp

    app.register_blueprint(api_import_bp)
    app.register_blueprint(api_classes_bp)
    app.register_blueprint(api_exams_bp)
    app.register_blueprint(api_assignments_bp)
    app.register_blueprint(ai_bp)

    def _allowed_origin():
        origins = app.config.get("CORS_ALLOWED_ORIGINS")
        origin = request.headers.get("Origin")
        if origins and origin and origin in origins.split(","):
            return origin
        return None

    @app.before_request
    def answer_cors_preflight():
        if request.method != "OPTIONS" or _allowed_origin() is None:
            return None
        if "Access-Control-Request-Method" not in request.headers:
            return None
        response = app.make_default_options_response()
        response.headers["Access-Control-Allow-Methods"] = CORS_ALLOWED_METHODS
        response.headers["Access-Control-Allow-Headers"] = CORS_ALLOWED_HEADERS
        response.headers["Access-Control-Max-Age"] = str(CORS_MAX_AGE_SECONDS)
        return response

    @app.after_request
    def add_cors_headers(response):
        origin = _allowed_origin()
        if origin:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        return response

    @app.errorhandler(413)
    def upload_too_large(error):
        return jsonify({
            "ok": False,
            "code": "FILE_TOO_LARGE",
            "message": "Uploaded file is too large.",
        }), 413

    @app.errorhandler(SQLAlchemyError)
    def database_error(error):
        db.session.rollback()
        app.logger.exception("Database error on %s", request.path)
        return jsonify({
            "ok": False,
            "code": "DB_ERROR",
            "message": "Database error.",
        }), 500

    return app

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, DEFAULT_TOKEN_SECRET
from .errors import register_error_handlers
from models import storage  # DBStorage singleton (scoped_session)

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Video Platform Accounts API",
        "version": "1.0.0",
        "description": "Registration, login/logout, password change and profile management for a video-sharing platform.",
    },
    "basePath": "/",  # Blueprints are mounted under /api/v1
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def create_app(config_name: str | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Token settings are frozen here, once, and shared by every request
    through the session manager.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))

    if app.config["APP_ENV"] in ("prod", "production") and app.config["TOKEN_SECRET"] == DEFAULT_TOKEN_SECRET:
        raise RuntimeError("TOKEN_SECRET must be set in production")

    # Cookies carry the tokens, so credentials must be allowed cross-origin
    origins = app.config.get("CORS_ORIGINS", "*")
    if origins != "*":
        origins = [o.strip() for o in origins.split(",") if o.strip()]
    CORS(app, resources={r"/*": {"origins": origins}}, supports_credentials=True)

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    from models.account_store import AccountStore
    from utils.media import MediaStore
    from utils.security import TokenCodec, TokenSettings
    from utils.sessions import SessionManager

    codec = TokenCodec(TokenSettings.from_config(app.config))
    accounts = AccountStore(storage)
    app.extensions["token_codec"] = codec
    app.extensions["account_store"] = accounts
    app.extensions["session_manager"] = SessionManager(
        codec, accounts, silent_renewal=app.config["SILENT_RENEWAL"]
    )
    app.extensions["media_store"] = MediaStore.from_config(app.config)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/users")
    app.register_blueprint(users_bp, url_prefix="/api/v1/users")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to the Video Platform Accounts API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app

from flask import Flask, current_app, send_from_directory
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from vidtube.models import storage  # DBStorage singleton (scoped_session)
from vidtube.utils.media import LocalMediaStore
from vidtube.utils.tokens import TokenIssuer

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "VidTube API",
        "version": "1.0.0",
        "description": "User registration, session lifecycle and profile endpoints for the VidTube video platform.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\". "
                           "The accessToken cookie is accepted as well.",
        }
    },
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


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    Storage, the token issuer and the media store are built here from the
    selected config (plus any overrides, e.g. a temporary database in tests).
    """
    app = Flask(__name__)

    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    # Cookies carry the session, so credentials must be allowed cross-origin
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )

    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    register_error_handlers(app)

    storage.configure(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
    storage.reload()
    app.extensions["token_issuer"] = TokenIssuer.from_config(app.config, store=storage)
    app.extensions["media_store"] = LocalMediaStore.from_config(app.config)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/users")
    app.register_blueprint(users_bp, url_prefix="/api/v1/users")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    media_prefix = "/" + app.config.get("MEDIA_URL_PREFIX", "/media").strip("/")

    @app.get(f"{media_prefix}/<path:public_id>")
    def media(public_id):
        return send_from_directory(current_app.extensions["media_store"].root.resolve(), public_id)

    @app.route("/")
    def root():
        return {
            "message": "Welcome to VidTube API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app

from typing import Any, Mapping

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from models.db_storage import DBStorage
from utils.ratelimit import init_rate_limiting

API_PREFIX = "/api/v1"

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Task & Item API",
        "version": "1.0.0",
        "description": "REST API for tasks and catalogue items with JWT auth and refresh-token rotation.",
    },
    "basePath": "/",
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


def create_app(config_name: str | None = None, overrides: Mapping[str, Any] | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    The app owns its DBStorage (engine + scoped sessions); handlers reach it
    through api.context.get_storage(). ``overrides`` is applied on top of the
    selected config class, which is how tests point at a throwaway database.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    storage = DBStorage(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
    storage.reload()
    app.extensions["storage"] = storage

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Global error handlers that return the uniform error envelope
    register_error_handlers(app)
    init_rate_limiting(app)

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .tasks import bp as tasks_bp
    from .items import bp as items_bp
    from .cli import register_commands

    app.register_blueprint(health_bp, url_prefix=API_PREFIX)
    app.register_blueprint(auth_bp, url_prefix=f"{API_PREFIX}/auth")
    app.register_blueprint(tasks_bp, url_prefix=API_PREFIX)
    app.register_blueprint(items_bp, url_prefix=API_PREFIX)
    register_commands(app)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to the Task & Item API",
            "docs": "/apidocs/",
            "health": f"{API_PREFIX}/health",
        }, 200

    return app

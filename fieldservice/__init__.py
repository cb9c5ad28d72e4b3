import os

from flask import Flask

# Local runs read .env; in production the platform provides the environment
if os.getenv("APP_ENV", "development") != "production":
    from dotenv import load_dotenv
    load_dotenv(".env", override=False)

from .config import get_config
from .errors import ErrorCode, ServiceError, error_response, register_error_handlers
from .extensions import csrf, db, limiter, login_manager, migrate
from .observability import init_logging, init_sentry
from .security import init_security

HARDENED_ENVS = ("staging", "production")


def _limiter_storage(app_env: str) -> str:
    if app_env not in HARDENED_ENVS:
        return "memory://"
    uri = os.environ.get("REDIS_URL")
    if not uri:
        # shared limiter storage is mandatory once there is more than one worker
        raise RuntimeError("REDIS_URL is required in staging/production for rate limiting")
    return uri


def _register_blueprints(app):
    from .blueprints.api import bp as api_bp
    from .blueprints.auth import bp as auth_bp
    from .blueprints.estimates import bp as estimates_bp
    from .blueprints.libraries import bp as libraries_bp

    for bp, prefix in (
        (auth_bp, "/auth"),
        (estimates_bp, "/estimates"),
        (libraries_bp, "/libraries"),
        (api_bp, "/api"),
    ):
        app.register_blueprint(bp, url_prefix=prefix)


def create_app():
    app = Flask(__name__)
    app_env = (os.getenv("APP_ENV", "development") or "development").lower()

    app.config.update(
        RATELIMIT_STORAGE_URI=_limiter_storage(app_env),
        RATELIMIT_HEADERS_ENABLED=True,
    )
    app.config.from_object(get_config())

    init_logging(app)
    init_sentry(app)
    if app_env in HARDENED_ENVS:
        init_security(app)

    db.init_app(app)
    migrate.init_app(app, db, directory="migrations")
    csrf.init_app(app)
    login_manager.init_app(app)
    limiter.init_app(app)

    # metadata must be complete before create_all / autogenerate
    from . import models  # noqa: F401

    @login_manager.unauthorized_handler
    def _unauthorized():
        return error_response(ServiceError(ErrorCode.UNAUTHORIZED))

    _register_blueprints(app)
    register_error_handlers(app)

    from .cli import register_cli
    register_cli(app)

    app.logger.info("fieldservice app created (env=%s)", app_env)
    return app

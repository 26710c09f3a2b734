import os

from dotenv import load_dotenv
from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from parkshare.commands import register_commands
from parkshare.config import config_by_env
from parkshare.errors import register_error_handlers
from parkshare.extensions import db, limiter, migrate
from parkshare.jobs import LifecycleTicker
from parkshare.routes.api.v1 import api_v1_bp


def create_app(config_name=None):
    load_dotenv()
    env = config_name or os.getenv("FLASK_ENV", "development")

    project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_by_env.get(env, config_by_env["development"]))
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    app.config["SQLALCHEMY_DATABASE_URI"] = _anchor_sqlite_path(
        app.config.get("SQLALCHEMY_DATABASE_URI", ""), project_root
    )

    db.init_app(app)
    migrate.init_app(app, db)
    # RATELIMIT_DEFAULT and RATELIMIT_ENABLED are read from app.config.
    limiter.init_app(app)
    _init_sentry(app, env)

    register_error_handlers(app)
    register_commands(app)
    app.register_blueprint(api_v1_bp, url_prefix="/api/v1")

    if env == "development":
        with app.app_context():
            db.create_all()

    if app.config.get("SWEEPER_ENABLED") and not app.config.get("TESTING"):
        ticker = LifecycleTicker(app, app.config["SWEEP_INTERVAL"])
        app.extensions["lifecycle_ticker"] = ticker
        ticker.start_on_first_request()

    return app


def _init_sentry(app, env):
    dsn = app.config.get("SENTRY_DSN")
    if not dsn:
        return
    try:
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.05")),
            environment=env,
        )
        app.logger.info("Sentry initialized.")
    except Exception as exc:
        app.logger.warning("Sentry initialization failed: %s", exc)


def _anchor_sqlite_path(db_uri, project_root):
    """Resolve relative SQLite files against the project root, creating the folder."""
    if not db_uri.startswith("sqlite:///") or db_uri.startswith("sqlite:////") or db_uri == "sqlite:///:memory:":
        return db_uri
    database_file = os.path.join(project_root, db_uri[len("sqlite:///") :])
    os.makedirs(os.path.dirname(database_file), exist_ok=True)
    return f"sqlite:///{database_file}"

# backend/cubepos/__init__.py
import atexit

from flask import Flask

from .config import Config
from .extensions import db, migrate, NOTIFIER_KEY, STOCK_ALERTS_KEY, CLOCK_KEY
from .time_utils import utcnow


def create_app(test_config=None, *, notifier=None, clock=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Collaborators: explicit instances per app, reached via extensions accessors
    from .services.notifier import build_notifier
    from .services.stock_alert_service import StockAlertDispatcher, StockAlertService

    notifier = notifier or build_notifier(app.config)
    notifier.init()
    app.extensions[NOTIFIER_KEY] = notifier
    atexit.register(notifier.shutdown)
    app.extensions[CLOCK_KEY] = clock or utcnow

    dispatcher = None
    if app.config.get("STOCK_ALERTS_ENABLED"):
        dispatcher = StockAlertDispatcher(
            StockAlertService(notifier),
            maxsize=int(app.config.get("STOCK_ALERT_QUEUE_SIZE") or 256),
            shutdown_timeout=float(app.config.get("STOCK_ALERT_SHUTDOWN_TIMEOUT") or 10),
        )
        dispatcher.start()
        atexit.register(dispatcher.shutdown)
    app.extensions[STOCK_ALERTS_KEY] = dispatcher

    # Register blueprints
    from .routes.pos import pos_bp
    from .routes.billing import billing_bp
    from .routes.inventory import inventory_bp

    app.register_blueprint(pos_bp)
    app.register_blueprint(billing_bp)
    app.register_blueprint(inventory_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

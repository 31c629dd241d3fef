# Overview: Flask extension instances and accessors for app-scoped collaborators.

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

NOTIFIER_KEY = "cubepos.notifier"
STOCK_ALERTS_KEY = "cubepos.stock_alerts"
CLOCK_KEY = "cubepos.clock"


def get_notifier():
    return current_app.extensions[NOTIFIER_KEY]


def get_stock_alerts():
    """Stock alert dispatcher, or None when alerts are disabled."""
    return current_app.extensions.get(STOCK_ALERTS_KEY)


def get_clock():
    return current_app.extensions[CLOCK_KEY]

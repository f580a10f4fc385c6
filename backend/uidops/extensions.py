# Overview: Flask extension instances for the record/plan database and its migrations.

from flask import current_app
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData

# Named constraints keep Alembic batch operations on SQLite deterministic.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

db = SQLAlchemy(metadata=MetaData(naming_convention=NAMING_CONVENTION))
migrate = Migrate(render_as_batch=True)


def business_clock():
    """The app's BusinessClock (set up in create_app)."""
    return current_app.extensions["business_clock"]


def completion_bus():
    """The app's CompletionEventBus (set up in create_app)."""
    return current_app.extensions["completion_bus"]

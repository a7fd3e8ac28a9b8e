from flask import current_app

from models.db_storage import DBStorage


def get_storage() -> DBStorage:
    """Return the DBStorage owned by the current application."""
    return current_app.extensions["storage"]


def get_session():
    return get_storage().get_session()

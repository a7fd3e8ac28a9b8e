"""
Persistence layer: SQLAlchemy models and the DBStorage handle.

There is no module-level storage instance; the Flask app builds one in
create_app() and handlers reach it through api.context.get_storage().
"""
from models.db_storage import DBStorage, classes

__all__ = ["DBStorage", "classes"]

"""Persistence layer: the shared DBStorage instance and the models it manages.

The storage starts unconfigured; create_app() points it at DATABASE_URL.
"""
from vidtube.models.db_storage import DBStorage
from vidtube.models.user import User  # noqa: F401  registers the users table

storage = DBStorage()

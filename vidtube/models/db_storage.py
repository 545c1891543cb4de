import logging

from sqlalchemy import create_engine, event
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from vidtube.models.base_model import Base

logger = logging.getLogger(__name__)


class DBStorage:
    """Credential store facade over a SQLAlchemy engine and scoped session.

    The engine is built from an explicit database URL passed to configure();
    nothing is read from the environment here.
    """

    __engine = None
    __session = None

    def __init__(self, database_url: str | None = None, echo: bool = False):
        if database_url:
            self.configure(database_url, echo=echo)

    def configure(self, database_url: str, echo: bool = False):
        """Point the storage at a database, dropping any previous engine."""
        if self.__session is not None:
            self.__session.remove()
            self.__session = None
        if self.__engine is not None:
            self.__engine.dispose()

        kwargs = {"echo": echo}
        if database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in database_url:
                # one shared connection, otherwise every checkout sees an empty database
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True
        self.__engine = create_engine(database_url, **kwargs)

        if self.__engine.url.get_backend_name() == "sqlite":
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
        logger.debug("Storage configured for %s", self.__engine.url.render_as_string(hide_password=True))

    def reload(self):
        """Create tables and start session"""
        if self.__engine is None:
            raise RuntimeError("DBStorage.configure() must be called before reload()")
        Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        self.__session = scoped_session(session_factory)

    def new(self, obj):
        """Add object to session"""
        self.__session.add(obj)

    def save(self):
        """Commit session"""
        try:
            self.__session.commit()
        except SQLAlchemyError:
            self.__session.rollback()
            raise

    def get(self, cls, id):
        """Fetch one object by class and ID"""
        if id is None:
            return None
        return self.__session.get(cls, id)

    def count(self, cls):
        """Count rows of one model"""
        return self.__session.query(cls).count()

    def close(self):
        """Remove session (for API teardown)"""
        if self.__session is not None:
            self.__session.remove()

    # expose the SQLAlchemy session for advanced querying (conditional updates, filters)
    def get_session(self):
        return self.__session

# Engine, sessions and the request dependency

from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and session factory for one running application.

    Created at startup and disposed at shutdown; request handlers receive
    sessions through ``get_db`` instead of importing a global handle.
    """

    def __init__(self, url: str, auth_token: str = None, echo: bool = False):
        connect_args = {}
        engine_kwargs = {}

        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            if url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool
        if auth_token and url.startswith("sqlite+libsql"):
            connect_args["auth_token"] = auth_token

        self.engine = create_engine(url, echo=echo, connect_args=connect_args, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self):
        # Import models so they register on Base.metadata
        import timebox.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def dispose(self):
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()

"""Store connection and session helpers.

`Database` owns the SQLModel/SQLAlchemy engine for the lesson, user and
tutorial collections. It is constructed explicitly, opened once when the
application starts and closed when it shuts down; request handlers never
reach for a module-level engine. `get_session` is the FastAPI dependency
that hands each request its own `Session`.
"""

import logging
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from . import models  # noqa: F401  registers the tables on SQLModel.metadata

logger = logging.getLogger("learn_api.database")


class Database:
    """Lifecycle wrapper around one engine."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[Engine] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("database is not open")
        return self._engine

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> "Database":
        """Create the engine and make sure every collection table exists.

        Calling `open` on an already open database is a no-op.
        """
        if self._engine is not None:
            return self
        connect_args = {"check_same_thread": False} if self.url.startswith("sqlite") else {}
        self._engine = create_engine(self.url, echo=self.echo, connect_args=connect_args)
        SQLModel.metadata.create_all(self._engine)
        logger.info("database opened: %s", self._engine.url.render_as_string(hide_password=True))
        return self

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        logger.info("database closed")

    def session(self) -> Session:
        return Session(self.engine)

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()


def get_session(request: Request) -> Iterator[Session]:
    """Yield a `Session` for FastAPI dependency injection.

    The session comes from the `Database` stored on the application state
    and is closed when the request scope finishes.
    """
    database: Database = request.app.state.database
    with database.session() as session:
        yield session

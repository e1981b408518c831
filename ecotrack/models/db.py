import logging
from contextlib import contextmanager
from typing import Dict, Generator, Iterable, Optional

from sqlalchemy import create_engine, event, inspect, insert, text, update
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .base import Base  # shared Base so create_all sees every model
from . import activity  # noqa: F401
from . import checklist_item  # noqa: F401
from . import custom_task  # noqa: F401
from . import day_ledger  # noqa: F401
from . import user  # noqa: F401
from ..services.errors import StorageFault


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Explicitly initialised store handle shared by every service of one app.

    Nothing may open a session before :meth:`init` has run; the app factory
    calls it once, before any route is registered.
    """

    def __init__(self, url: str, echo: bool = False):
        engine_kwargs = {"echo": echo, "future": True, "pool_pre_ping": True}
        if url.startswith("mysql"):
            # recycle idle connections before MySQL wait_timeout drops them
            engine_kwargs["pool_recycle"] = 1800
            engine_kwargs["connect_args"] = {"connect_timeout": 10}
        elif url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}

        self.url = url
        self.engine = create_engine(url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        self.ready = False

    def init(self) -> None:
        """Create tables for all models and back-fill columns added after first deploy."""
        Base.metadata.create_all(bind=self.engine)
        self._ensure_user_columns()
        self.ready = True
        logging.info("Database initialised (%s)", self.engine.dialect.name)

    def _ensure_user_columns(self) -> None:
        """Add newly introduced user columns on existing databases without manual migrations."""
        inspector = inspect(self.engine)
        if 'users' not in inspector.get_table_names():
            return

        existing_columns = {column['name'] for column in inspector.get_columns('users')}
        alter_clauses = []
        if 'last_login' not in existing_columns:
            alter_clauses.append('ADD COLUMN last_login TIMESTAMP NULL')
        if 'last_nudged_day' not in existing_columns:
            alter_clauses.append('ADD COLUMN last_nudged_day VARCHAR(10) NULL')

        # SQLite only accepts one ADD COLUMN per ALTER statement
        with self.engine.begin() as connection:
            for clause in alter_clauses:
                connection.execute(text(f"ALTER TABLE users {clause}"))

    @contextmanager
    def session_scope(self, commit_on_success: bool = False) -> Generator[Session, None, None]:
        """Yield a session; roll back on any error and surface store errors as StorageFault."""
        if not self.ready:
            raise StorageFault("Database has not been initialised")
        session = self.SessionLocal()
        try:
            yield session
            if commit_on_success:
                session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logging.exception("Storage fault: %s", exc)
            raise StorageFault("Storage is unavailable, please retry") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()


def insert_ignore(session: Session, model, values: Dict[str, object]) -> int:
    """Insert a row unless it collides with a unique key; returns the inserted row count."""
    table = model.__table__
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        stmt = sqlite.insert(table).values(**values).on_conflict_do_nothing()
    elif dialect == "postgresql":
        stmt = postgresql.insert(table).values(**values).on_conflict_do_nothing()
    elif dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(table).values(**values).prefix_with("IGNORE")
    else:
        try:
            with session.begin_nested():
                session.execute(insert(table).values(**values))
        except IntegrityError:
            return 0
        return 1
    return session.execute(stmt).rowcount


def upsert(
    session: Session,
    model,
    values: Dict[str, object],
    key_columns: Iterable[str],
    update_values: Optional[Dict[str, object]] = None,
) -> None:
    """Insert a row or, when its unique key already exists, update it in one statement."""
    table = model.__table__
    key_columns = list(key_columns)
    if update_values is None:
        update_values = {name: value for name, value in values.items() if name not in key_columns}
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        stmt = sqlite.insert(table).values(**values)
        stmt = stmt.on_conflict_do_update(index_elements=key_columns, set_=update_values)
    elif dialect == "postgresql":
        stmt = postgresql.insert(table).values(**values)
        stmt = stmt.on_conflict_do_update(index_elements=key_columns, set_=update_values)
    elif dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(table).values(**values).on_duplicate_key_update(**update_values)
    else:
        try:
            with session.begin_nested():
                session.execute(insert(table).values(**values))
        except IntegrityError:
            conditions = [table.c[name] == values[name] for name in key_columns]
            session.execute(update(table).where(*conditions).values(**update_values))
        return
    session.execute(stmt)

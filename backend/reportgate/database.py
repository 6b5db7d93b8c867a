from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from reportgate.config import settings

# Connection execution option: start the transaction holding the SQLite write lock
BEGIN_IMMEDIATE = "begin_immediate"


def _use_immediate_transactions(engine: Engine) -> None:
    """
    Let read-check-write transactions take the SQLite write lock up front.

    pysqlite defers BEGIN until the first write, so two transactions can both read a
    row before either writes it. Connections carrying the ``BEGIN_IMMEDIATE`` execution
    option start with BEGIN IMMEDIATE, which makes that sequence serializable; competing
    writers queue on the busy timeout. Plain reads use a deferred BEGIN and never wait
    on writers.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        if conn.get_execution_options().get(BEGIN_IMMEDIATE):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def build_engine(url: str, *, busy_timeout: float | None = None, **kwargs) -> Engine:
    """Create an engine, applying SQLite-specific connection handling when needed."""
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        connect_args = {"check_same_thread": False}
        if busy_timeout is not None:
            connect_args["timeout"] = busy_timeout
        kwargs.setdefault("connect_args", connect_args)

    engine = create_engine(url, **kwargs)
    if is_sqlite:
        _use_immediate_transactions(engine)
    return engine


engine = build_engine(
    settings.effective_database_url,
    busy_timeout=settings.database_busy_timeout_seconds,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass

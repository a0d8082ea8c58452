from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool


def _is_memory_sqlite(db_url: str) -> bool:
    return db_url.startswith("sqlite") and (":memory:" in db_url or db_url.rstrip("/").endswith("sqlite+aiosqlite:"))


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection, connection_record):
    # SQLite's built-in lower() only folds ASCII
    dbapi_connection.create_function("lower", 1, _unicode_lower)


def build_engine(db_url: str) -> AsyncEngine:
    """Async engine for the sql record store."""
    if not db_url:
        raise RuntimeError("DB_URL is not configured. Set it in environment or .env before starting the app.")

    engine_kwargs = {"echo": False}

    if db_url.startswith("sqlite"):
        # busy timeout instead of an immediate "database is locked"
        engine_kwargs["connect_args"] = {"timeout": 30, "check_same_thread": False}
        if _is_memory_sqlite(db_url):
            # every connection would otherwise see its own empty database
            engine_kwargs["poolclass"] = StaticPool

    engine = create_async_engine(db_url, **engine_kwargs)
    if db_url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _register_sqlite_functions)
    return engine

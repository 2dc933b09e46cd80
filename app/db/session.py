from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker

from app.core.config import settings

# pool_pre_ping: test connections before use (prevents stale connections after failover)
# pool_timeout: wait up to 30s for a connection instead of blocking indefinitely
engine_kwargs = {"pool_pre_ping": True, "echo": False}
if not settings.DATABASE_URL.startswith("sqlite"):
    engine_kwargs.update(pool_size=20, max_overflow=10, pool_recycle=3600, pool_timeout=30)

engine = create_engine(settings.DATABASE_URL, **engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

UNIQUE_VIOLATION_PGCODE = "23505"


def check_db_connection(bind=None) -> None:
    """Run ``SELECT 1``. Raises if the database is unreachable."""
    with (bind or engine).connect() as conn:
        conn.execute(text("SELECT 1"))


def is_unique_violation(exc: IntegrityError, constraint_names, columns=()) -> bool:
    """
    Return True if ``exc`` is a unique violation on one of the given constraints.

    PostgreSQL drivers expose the SQLSTATE and constraint name on the wrapped
    exception; SQLite only reports ``UNIQUE constraint failed: table.column``,
    so ``columns`` ("table.column") is matched against the message there.
    """
    orig = getattr(exc, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    diag = getattr(orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if pgcode == UNIQUE_VIOLATION_PGCODE:
        return constraint in constraint_names

    message = str(orig or exc)
    if "UNIQUE constraint failed" in message:
        return any(column in message for column in columns)
    return any(name in message for name in constraint_names)

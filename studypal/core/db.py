"""
SQLAlchemy engine, session, and base. DB url from config or default.
"""
import importlib
import logging
import pkgutil
from pathlib import Path
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base, Session

logger = logging.getLogger(__name__)

Base = declarative_base()

_engine = None
_SessionLocal = None

DEFAULT_DB_DIR = Path.home() / ".studypal"


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Context manager for a single DB session. Commits on success, rolls back on error."""
    if _SessionLocal is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def _default_url() -> str:
    DEFAULT_DB_DIR.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{DEFAULT_DB_DIR / 'studypal.db'}"


def _resolve_url(config_data: Optional[dict]) -> str:
    db_config = (config_data or {}).get("database") or {}
    if db_config.get("url"):
        return db_config["url"]
    path = db_config.get("path")
    if path:
        path = Path(path).expanduser().resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{path}"
    return _default_url()


def _import_feature_models() -> None:
    """Import every studypal.features.<name>.models so its tables register with Base."""
    features_pkg = importlib.import_module("studypal.features")
    for _mod, name, is_pkg in pkgutil.iter_modules(features_pkg.__path__):
        if not is_pkg:
            continue
        try:
            importlib.import_module(f"studypal.features.{name}.models")
        except ModuleNotFoundError as e:
            if e.name != f"studypal.features.{name}.models":
                raise


def init_db(config_data: Optional[dict] = None, db_url: Optional[str] = None) -> None:
    """
    Initialize database engine and create tables.
    config_data: app config dict; used for database.url / database.path if db_url not given.
    db_url: optional SQLAlchemy URL override.
    """
    global _engine, _SessionLocal

    if _engine is not None:
        logger.debug("Database already initialized")
        return

    if db_url is None:
        db_url = _resolve_url(config_data)

    _engine = create_engine(db_url, echo=False, future=True)

    if _engine.dialect.name == "sqlite":
        # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
        @event.listens_for(_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    from studypal.core import models as _core_models  # noqa: F401
    _import_feature_models()

    Base.metadata.create_all(_engine)
    _SessionLocal = sessionmaker(bind=_engine, autocommit=False, autoflush=False, expire_on_commit=False)
    logger.info(f"Database initialized: {db_url.split('?')[0]}")


def close_db() -> None:
    """Dispose the engine so init_db() can be called again (shutdown, tests)."""
    global _engine, _SessionLocal

    if _engine is not None:
        _engine.dispose()
        logger.debug("Database engine disposed")
    _engine = None
    _SessionLocal = None

# onboardpro/database.py
import logging
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session

from onboardpro.config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()
SessionLocal = sessionmaker(autocommit=False, autoflush=False)

_engine: Optional[Engine] = None


def init_db(database_url: Optional[str] = None, create_tables: Optional[bool] = None, **engine_kwargs) -> Engine:
    """Create the process-wide engine and bind the session factory to it.

    Called once at application startup; tests call it with their own URL and
    pool arguments.
    """
    global _engine

    url = database_url or Settings.DATABASE["url"]
    connect_args = engine_kwargs.pop("connect_args", {})
    if url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    elif Settings.DATABASE["sslmode"]:
        connect_args.setdefault("sslmode", Settings.DATABASE["sslmode"])

    if not url.startswith("sqlite") and "poolclass" not in engine_kwargs:
        engine_kwargs.setdefault("pool_size", Settings.DATABASE["pool_size"])
        engine_kwargs.setdefault("pool_pre_ping", True)

    _engine = create_engine(url, connect_args=connect_args, echo=Settings.DATABASE["echo"], **engine_kwargs)
    SessionLocal.configure(bind=_engine)

    if create_tables is None:
        create_tables = Settings.DATABASE["create_tables"]
    if create_tables:
        # register every model on the metadata before creating tables
        import onboardpro.models  # noqa: F401
        Base.metadata.create_all(bind=_engine)

    logger.info(f"Database engine initialised ({_engine.dialect.name})")
    return _engine


def close_db():
    """Dispose of the pooled connections at shutdown."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        logger.info("Database engine disposed")
        _engine = None


def check_connection() -> bool:
    if _engine is None:
        return False
    try:
        with _engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return False


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()

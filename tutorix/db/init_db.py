"""Database initialization utilities."""
from typing import Optional

from sqlalchemy.engine import Engine

from tutorix.core.logging import get_logger
from tutorix.db.base import Base, import_models

logger = get_logger(__name__)


def _engine(bind: Optional[Engine]) -> Engine:
    if bind is not None:
        return bind
    from tutorix.db.session import engine
    return engine


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Create all tables that do not exist yet.

    Suitable for development and tests; production schemas are migrated.
    """
    import_models()
    Base.metadata.create_all(bind=_engine(bind))
    logger.info("Database tables ensured", extra={"tables": len(Base.metadata.tables)})


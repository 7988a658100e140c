"""
Base repository with standardized CRUD operations.

Repositories only flush; committing is the job of the service layer's
``UnitOfWork`` so several writes land in one transaction.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from tutorix.core.exceptions import NotFoundError
from tutorix.core.logging import get_logger
from tutorix.models.base.base_model import BaseModel

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository over one model.

    Args:
        model: SQLAlchemy model class
        db: Database session
    """

    model: Type[ModelType]

    def __init__(self, db: Session, model: Optional[Type[ModelType]] = None):
        if model is not None:
            self.model = model
        self.db = db

    # ==================== Read Operations ====================

    def get(self, entity_id: str) -> Optional[ModelType]:
        return self.db.get(self.model, entity_id)

    def get_or_raise(self, entity_id: str, resource_type: Optional[str] = None) -> ModelType:
        entity = self.get(entity_id)
        if entity is None:
            raise NotFoundError(resource_type or self.model.__name__, entity_id)
        return entity

    def find_one(self, **filters: Any) -> Optional[ModelType]:
        stmt = select(self.model).filter_by(**filters).limit(1)
        return self.db.scalars(stmt).first()

    def get_for_update(self, entity_id: str) -> Optional[ModelType]:
        """Re-read one row under a row lock, refreshing an already loaded instance."""
        stmt = (
            select(self.model)
            .where(self.model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.scalars(stmt).first()

    # ==================== Write Operations ====================

    def add(self, entity: ModelType) -> ModelType:
        """Stage an entity and flush so generated ids and constraints apply now."""
        self.db.add(entity)
        self.db.flush()
        logger.debug("Entity staged", extra={"model": self.model.__name__, "entity_id": entity.id})
        return entity

    def delete(self, entity: ModelType) -> None:
        self.db.delete(entity)
        self.db.flush()

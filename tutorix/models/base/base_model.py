"""
Base model configuration for SQLAlchemy ORM.

Provides the declarative base and the abstract model every table inherits.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import String
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from tutorix.models.base.mixins import TimestampMixin

Base = declarative_base()


def new_id() -> str:
    return str(uuid4())


class BaseModel(Base, TimestampMixin):
    """
    Abstract base model with a string UUID primary key and timestamps.
    """

    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
        comment="Primary key (UUID)"
    )

    def to_dict(self, exclude: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Convert model instance to a JSON-friendly dictionary.

        Args:
            exclude: List of column names to exclude
        """
        exclude = exclude or []
        result: Dict[str, Any] = {}

        for column in self.__table__.columns:
            if column.name in exclude:
                continue
            value = getattr(self, column.key)
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            elif isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, Enum):
                value = value.value
            result[column.name] = value

        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.id})>"

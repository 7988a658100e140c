from tutorix.schemas.common.base import (
    BaseCreateSchema,
    BaseResponseSchema,
    BaseSchema,
    BaseUpdateSchema,
    TimestampMixin,
)

__all__ = [
    "BaseSchema",
    "TimestampMixin",
    "BaseCreateSchema",
    "BaseUpdateSchema",
    "BaseResponseSchema",
]

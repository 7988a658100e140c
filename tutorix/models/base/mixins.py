"""
SQLAlchemy model mixins for reusable functionality.
"""

from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column

from tutorix.utils.datetime_utils import utc_now


class TimestampMixin:
    """
    Mixin for automatic timestamp tracking (naive UTC).
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
        index=True,
        comment="Record creation timestamp (UTC)"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
        comment="Record last update timestamp (UTC)"
    )

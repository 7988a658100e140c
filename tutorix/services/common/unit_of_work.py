"""
Unit of Work pattern implementation.

Wraps the request's session so that every financial mutation commits or
rolls back as one unit.
"""
from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any, Dict, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tutorix.core.exceptions import BaseAppException, ErrorCode
from tutorix.core.logging import get_logger
from tutorix.repositories.base import BaseRepository

logger = get_logger(__name__)

TRepository = TypeVar("TRepository", bound=BaseRepository)


class TransactionError(BaseAppException):
    """Raised when a database transaction fails."""

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(
            message,
            ErrorCode.INTERNAL_ERROR,
            {"error_type": type(original_error).__name__ if original_error else None},
            500,
        )
        self.original_error = original_error


class UnitOfWork(AbstractContextManager["UnitOfWork"]):
    """
    Transaction boundary over an existing session.

    Commits when the block exits cleanly and rolls back otherwise.
    ``IntegrityError`` is re-raised unchanged so callers can recognise
    unique-constraint collisions; other database errors surface as
    ``TransactionError``.

    Usage:
        >>> with UnitOfWork(db) as uow:
        ...     payments = uow.get_repo(FeePaymentRepository)
        ...     payments.add(payment)
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self._repo_cache: Dict[Type[BaseRepository], BaseRepository] = {}
        self._active = False

    # ------------------------------------------------------------------ #
    # Context manager protocol
    # ------------------------------------------------------------------ #

    def __enter__(self) -> "UnitOfWork":
        if self._active:
            raise RuntimeError("UnitOfWork context already entered")
        self._active = True
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        self._active = False
        self._repo_cache.clear()

        if exc_type is not None:
            self.session.rollback()
            logger.debug("UnitOfWork rolled back", extra={"error_type": exc_type.__name__})
            if isinstance(exc_val, SQLAlchemyError) and not isinstance(exc_val, IntegrityError):
                raise TransactionError("Database transaction failed", exc_val) from exc_val
            return False

        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Commit failed", extra={"error": str(exc)})
            raise TransactionError("Failed to commit transaction", exc) from exc
        return False

    # ------------------------------------------------------------------ #
    # Repository access
    # ------------------------------------------------------------------ #

    def get_repo(self, repo_cls: Type[TRepository]) -> TRepository:
        if repo_cls not in self._repo_cache:
            self._repo_cache[repo_cls] = repo_cls(self.session)
        return self._repo_cache[repo_cls]  # type: ignore[return-value]

"""
Base Repository Class.

============================================================
PURPOSE
============================================================
Shared plumbing for the diary repositories:
- Session injection
- Wrapping of SQLAlchemy errors in repository exceptions
- Add/get/delete/query helpers

Repositories never commit. Transaction boundaries belong to
the caller (see SqlAlchemyTradeStore.transaction).

============================================================
"""

import logging
from abc import ABC
from typing import Any, Generic, List, NoReturn, Optional, Type, TypeVar

from sqlalchemy.exc import (
    IntegrityError as SQLAlchemyIntegrityError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from storage.models.base import Base
from storage.repositories.exceptions import (
    ConnectionError,
    IntegrityError,
    QueryError,
)


T = TypeVar("T", bound=Base)


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base class for all repositories.

    Usage:
        class TradeRepository(BaseRepository[Trade]):
            def __init__(self, session: Session):
                super().__init__(session, Trade, "TradeRepository")
    """

    def __init__(
        self,
        session: Session,
        model_class: Type[T],
        repository_name: str
    ) -> None:
        self._session = session
        self._model_class = model_class
        self._repository_name = repository_name
        self._logger = logging.getLogger(f"repository.{repository_name}")

    @property
    def session(self) -> Session:
        return self._session

    # =========================================================
    # PROTECTED HELPER METHODS
    # =========================================================

    def _handle_db_error(
        self,
        error: SQLAlchemyError,
        operation: str,
        context: Optional[dict] = None
    ) -> NoReturn:
        """Log and re-raise `error` as a repository exception."""
        self._logger.error(
            f"Database error in {operation}: {error}",
            extra={"context": context or {}},
        )

        if isinstance(error, OperationalError):
            raise ConnectionError(
                repository_name=self._repository_name,
                operation=operation,
                original_error=str(error)
            ) from error

        if isinstance(error, SQLAlchemyIntegrityError):
            raise IntegrityError(
                repository_name=self._repository_name,
                operation=operation,
                message=str(error.orig)
            ) from error

        raise QueryError(
            repository_name=self._repository_name,
            operation=operation,
            original_error=str(error)
        ) from error

    def _add(self, entity: T) -> T:
        """Add and flush so generated values are visible."""
        try:
            self._session.add(entity)
            self._session.flush()
            self._logger.debug(f"Added entity: {entity}")
            return entity
        except SQLAlchemyError as e:
            self._handle_db_error(e, "add", {"entity": str(entity)})

    def _delete(self, entity: T) -> None:
        try:
            self._session.delete(entity)
            self._session.flush()
            self._logger.debug(f"Deleted entity: {entity}")
        except SQLAlchemyError as e:
            self._handle_db_error(e, "delete", {"entity": str(entity)})

    def _execute_query(self, stmt: Any) -> List[T]:
        """Execute a select statement and return all entities."""
        try:
            result = self._session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self._handle_db_error(e, "query")

    def _execute_scalar(self, stmt: Any) -> Optional[T]:
        """Execute a select statement and return one entity or None."""
        try:
            result = self._session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self._handle_db_error(e, "query_scalar")

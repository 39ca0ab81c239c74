"""Domain level exceptions shared across modules."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import exc as sa_exc

__all__ = [
    "AppError",
    "RepositoryError",
    "DatabaseOperationError",
    "StorageError",
    "StorageCommitError",
    "handle_sqlalchemy_errors",
]


class AppError(Exception):
    """Base class for application specific errors.

    ``operation`` and ``key`` describe where the failure happened so that an
    operator can diagnose it from the log line alone; the underlying cause is
    kept as ``__cause__`` via ``raise ... from``.
    """

    def __init__(
        self,
        message: str = "",
        *,
        operation: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.key = key

    def context(self) -> dict[str, str]:
        data = {"error": self.message or type(self).__name__}
        if self.operation:
            data["operation"] = self.operation
        if self.key:
            data["key"] = self.key
        if self.__cause__ is not None:
            data["cause"] = repr(self.__cause__)
        return data

    def __str__(self) -> str:
        parts = [self.message or type(self).__name__]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.key:
            parts.append(f"key={self.key}")
        return " ".join(parts)


class RepositoryError(AppError):
    """Base class for persistence layer failures."""


class DatabaseOperationError(RepositoryError):
    """Raised for unexpected database errors."""


class StorageError(AppError):
    """Base class for storage backend failures."""


class StorageCommitError(StorageError):
    """Raised when a backend could not durably persist an object."""


@contextmanager
def handle_sqlalchemy_errors(*, entity: str, operation: str) -> Iterator[None]:
    """Translate SQLAlchemy errors into :class:`DatabaseOperationError`."""

    try:
        yield
    except sa_exc.SQLAlchemyError as exc:
        raise DatabaseOperationError(
            f"{entity}: database operation failed", operation=operation
        ) from exc

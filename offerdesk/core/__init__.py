"""Core infrastructure: settings, database engine, tables, errors and scheduling."""

from .errors import (
    AppError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
    ValidationError,
)
from .settings import Settings, settings

__all__ = [
    "AppError",
    "ForbiddenError",
    "InternalError",
    "NotFoundError",
    "StorageError",
    "UnauthorizedError",
    "ValidationError",
    "Settings",
    "settings",
]

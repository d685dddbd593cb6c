"""
Structured error types for the plinth persistence core.

Every failure raised by the connection layer, query builder, repository,
schema builder and migration engine is a :class:`PlinthError`.  Each error
carries a category, a structured :class:`ErrorContext` (operation, driver,
table, migration, SQL) and the chained driver exception, so callers can log
or report it without parsing messages.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        PlinthError                           │
        │           (category, retryable, context, cause)              │
        ├──────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ConfigError          DatabaseConnectionError                │
        │  (CONFIG)             (DATABASE)                             │
        │                                                              │
        │  ExecutionError       MappingError        MigrationError     │
        │  (DATABASE)           (MAPPING)           (MIGRATION)        │
        │       │                                        │             │
        │  RecordNotFoundError              MigrationNotFoundError     │
        │                                   InvalidMigrationNameError  │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ExecutionError("INSERT failed").with_context(table="users")
    >>> error.context.table
    'users'
    >>> error.to_dict()["category"]
    'DATABASE'

Guardrails:
    ❌ DON'T: Raise bare driver exceptions out of the core
    ✅ DO: Wrap them and pass ``cause=`` so the chain is preserved

    ❌ DON'T: Retry inside the core
    ✅ DO: Let the caller decide; nothing here is retried automatically

Tags:
    error-handling, exception-hierarchy, error-context, plinth
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Unsupported driver, missing settings
    DATABASE = "DATABASE"         # Connection, statement failures
    MAPPING = "MAPPING"           # Entity / row shape mismatches
    MIGRATION = "MIGRATION"       # Unit lookup, naming, up/down failures
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        operation: What was being done (``"create"``, ``"rollback"``, ...)
        driver: Database driver name (``"mysql"``, ``"postgresql"``)
        table: Table the statement targeted
        migration: Migration unit name
        sql: Rendered statement text
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    driver: str | None = None
    table: str | None = None
    migration: str | None = None
    sql: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "driver", "table", "migration", "sql"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class PlinthError(Exception):
    """
    Base exception for all plinth errors.

    Subclasses set ``default_category`` so raising sites only pass what is
    specific to the failure.  When wrapping a driver exception pass it as
    ``cause=``; it becomes ``__cause__`` as well.

    Examples:
        >>> try:
        ...     raise OSError("socket closed")
        ... except OSError as e:
        ...     err = DatabaseConnectionError("ping failed", cause=e)
        >>> err.cause
        OSError('socket closed')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> PlinthError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ExecutionError("Failed").with_context(
                operation="update",
                table="users",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(PlinthError):
    """
    Configuration error.

    Raised for unsupported drivers, missing driver packages and invalid
    settings.  Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseConnectionError(PlinthError):
    """Opening or pinging the database failed."""

    default_category = ErrorCategory.DATABASE


class ExecutionError(PlinthError):
    """A statement failed, including constraint violations reported by the store."""

    default_category = ErrorCategory.DATABASE


class RecordNotFoundError(ExecutionError):
    """No row matched a lookup that requires one."""

    def __init__(self, table: str, key: Any):
        self.key = key
        super().__init__(
            f"No record in '{table}' matching {key!r}",
            context=ErrorContext(operation="find", table=table),
        )


# =============================================================================
# MAPPING ERRORS
# =============================================================================


class MappingError(PlinthError):
    """Entity type, destination or row shape does not line up with the mapping."""

    default_category = ErrorCategory.MAPPING


# =============================================================================
# MIGRATION ERRORS
# =============================================================================


class MigrationError(PlinthError):
    """A migration unit could not be resolved, applied or reverted."""

    default_category = ErrorCategory.MIGRATION


class MigrationNotFoundError(MigrationError):
    """No registered unit matches a recorded or requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Migration not found: {name}",
            context=ErrorContext(migration=name),
        )


class InvalidMigrationNameError(MigrationError):
    """Unit name is not ``<timestamp>_<name>``."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Invalid migration name format: {name!r} (expected '<timestamp>_<name>')",
            context=ErrorContext(migration=name),
        )


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "PlinthError",
    "ConfigError",
    "DatabaseConnectionError",
    "ExecutionError",
    "RecordNotFoundError",
    "MappingError",
    "MigrationError",
    "MigrationNotFoundError",
    "InvalidMigrationNameError",
]

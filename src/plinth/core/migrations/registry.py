"""Migration units and their registry.

A migration unit is a named pair of ``up`` / ``down`` steps.  Units are
registered explicitly, either by decorating a :class:`Migration` subclass
or by passing an instance (or plain ``up``/``down`` callables) to
:meth:`MigrationRegistry.register`.  Names are ``<timestamp>_<snake_name>``
and sort lexicographically into apply order.

Examples:
    >>> @migration("20240101000000_create_users_table")
    ... class CreateUsersTable(Migration):
    ...     def up(self, migrator):
    ...         migrator.schema.create("users", lambda t: (t.id(), t.string("name")))
    ...     def down(self, migrator):
    ...         migrator.schema.drop_if_exists("users")
    >>> "20240101000000_create_users_table" in default_registry
    True

Guardrails:
    ❌ DON'T: Rename a unit after it has been applied anywhere
    ✅ DO: Add a new unit; recorded names must keep resolving for rollback

Tags:
    migrations, registry, decorator
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from plinth.core.errors import (
    InvalidMigrationNameError,
    MigrationError,
    MigrationNotFoundError,
)

if TYPE_CHECKING:
    from plinth.core.migrations.runner import Migrator

MIGRATION_NAME_RE = re.compile(r"^\d+_\w+$")


class Migration:
    """Base class for migration units.  Override ``up`` and ``down``."""

    name: str = ""

    def up(self, migrator: Migrator) -> None:
        raise NotImplementedError(f"{type(self).__name__}.up is not implemented")

    def down(self, migrator: Migrator) -> None:
        raise NotImplementedError(f"{type(self).__name__}.down is not implemented")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FunctionMigration(Migration):
    """Unit built from two callables taking the migrator."""

    def __init__(
        self,
        name: str,
        up: Callable[[Migrator], Any],
        down: Callable[[Migrator], Any],
    ):
        self.name = name
        self._up = up
        self._down = down

    def up(self, migrator: Migrator) -> None:
        self._up(migrator)

    def down(self, migrator: Migrator) -> None:
        self._down(migrator)


def validate_name(name: str) -> str:
    """Return ``name`` if it is ``<digits>_<name>``, else raise."""
    if not isinstance(name, str) or not MIGRATION_NAME_RE.match(name):
        raise InvalidMigrationNameError(str(name))
    return name


class MigrationRegistry:
    """Name → unit mapping."""

    def __init__(self) -> None:
        self._units: dict[str, Migration] = {}

    def register(
        self,
        name: str,
        unit: Migration | type[Migration] | None = None,
        *,
        up: Callable[[Migrator], Any] | None = None,
        down: Callable[[Migrator], Any] | None = None,
    ) -> Migration:
        """Register a unit under ``name``.

        ``unit`` may be a :class:`Migration` instance or subclass; otherwise
        ``up`` and ``down`` callables must both be given.

        Raises:
            InvalidMigrationNameError: ``name`` is not ``<digits>_<name>``.
            MigrationError: ``name`` is already registered or no steps given.
        """
        validate_name(name)
        if name in self._units:
            raise MigrationError(
                f"Migration already registered: {name}"
            ).with_context(operation="register", migration=name)

        if isinstance(unit, type) and issubclass(unit, Migration):
            unit = unit()
        if unit is None:
            if up is None or down is None:
                raise MigrationError(
                    f"Migration {name} needs a unit or both up and down steps"
                ).with_context(operation="register", migration=name)
            unit = FunctionMigration(name, up, down)

        unit.name = name
        self._units[name] = unit
        return unit

    def get(self, name: str) -> Migration:
        try:
            return self._units[name]
        except KeyError:
            raise MigrationNotFoundError(name) from None

    def names(self) -> list[str]:
        """Registered names in apply order."""
        return sorted(self._units)

    def clear(self) -> None:
        self._units.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._units

    def __len__(self) -> int:
        return len(self._units)


# Global registry
default_registry = MigrationRegistry()


def migration(name: str, registry: MigrationRegistry | None = None):
    """Class decorator registering a :class:`Migration` subclass under ``name``."""

    def decorator(cls: type[Migration]) -> type[Migration]:
        target = registry if registry is not None else default_registry
        target.register(name, cls)
        return cls

    return decorator


__all__ = [
    "MIGRATION_NAME_RE",
    "FunctionMigration",
    "Migration",
    "MigrationRegistry",
    "default_registry",
    "migration",
    "validate_name",
]

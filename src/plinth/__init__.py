"""plinth — data-persistence core: connections, query builder, repository, schema, migrations."""

__version__ = "0.1.0"

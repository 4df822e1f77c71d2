"""Shared database access: schema, connection bootstrap and migrations."""

from .database import (
    ConfigurationError,
    Configured,
    Database,
    DeferredForBuild,
    MissingFatal,
    bootstrap,
    dispose_database,
    get_database,
)
from .models import Base, User

__all__ = [
    "Base",
    "ConfigurationError",
    "Configured",
    "Database",
    "DeferredForBuild",
    "MissingFatal",
    "User",
    "bootstrap",
    "dispose_database",
    "get_database",
]

"""Data access layer - Database models, connections and repositories."""

from .db_models import Base, FormDocument
from .database import (
    DatabaseManager,
    init_database,
)
from .repositories import FormRepository

__all__ = [
    # Models
    'Base',
    'FormDocument',

    # Database
    'DatabaseManager',
    'init_database',

    # Repositories
    'FormRepository',
]

"""Storage backends."""

from .abstract_storage import ReferenceStore
from .sql_storage import SQLReferenceStore

__all__ = ["ReferenceStore", "SQLReferenceStore"]

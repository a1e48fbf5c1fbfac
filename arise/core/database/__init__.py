from arise.core.database.base import Base, IdMixin, TimestampMixin
from arise.core.database.service import DatabaseService

__all__ = ["Base", "DatabaseService", "IdMixin", "TimestampMixin"]

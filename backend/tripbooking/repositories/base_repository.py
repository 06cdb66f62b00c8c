# backend/tripbooking/repositories/base_repository.py
"""
Base Repository Pattern for the trip booking platform.

Repositories never commit: the unit of work is owned by the persistence
gateway, which hands each repository the session it bound for the
transaction. Driver-level errors (``DBAPIError``, including
``IntegrityError`` and dropped connections) propagate unchanged so the
gateway can reconnect and services can translate constraint violations.
Other SQLAlchemy failures are wrapped in ``RepositoryException``.
"""

import logging
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Common data access patterns shared by every repository.

    Attributes:
        db: SQLAlchemy session bound by the current unit of work
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def query(self) -> Query:
        return self.db.query(self.model)

    def get_by_id(self, id: str, *, for_update: bool = False) -> Optional[T]:
        """Retrieve an entity by primary key, optionally locking the row."""
        try:
            query = self.query().filter(self.model.id == id)
            if for_update:
                query = query.with_for_update()
            return query.first()
        except DBAPIError:
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {str(e)}")

    def create(self, **kwargs: Any) -> T:
        """Add a new entity and flush to obtain database defaults. Does NOT commit."""
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()
            return entity
        except DBAPIError:
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to create {self.model.__name__}: {str(e)}")

    def update(self, entity: T, **kwargs: Any) -> T:
        """Apply the provided fields to ``entity`` and flush."""
        try:
            for key, value in kwargs.items():
                if hasattr(entity, key):
                    setattr(entity, key, value)
            self.db.flush()
            return entity
        except DBAPIError:
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to update {self.model.__name__}: {str(e)}")

    def delete(self, entity: T) -> None:
        try:
            self.db.delete(entity)
            self.db.flush()
        except DBAPIError:
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to delete {self.model.__name__}: {str(e)}")

    def count(self, **kwargs: Any) -> int:
        try:
            return self.query().filter_by(**kwargs).count()
        except DBAPIError:
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting records: {str(e)}")
            raise RepositoryException(f"Failed to count records: {str(e)}")

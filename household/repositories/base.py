"""Base repository class with common CRUD operations."""

import logging
from abc import ABC
from typing import Generic, TypeVar, Type, Optional, Any, Dict
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from household.db.base_class import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType")


class BaseRepository(Generic[ModelType], ABC):
    """Base repository class providing common data operations.

    Provides:
    - Create and read-by-id operations
    - Soft delete awareness for models with AuditMixin
    - Partial field updates
    - Structured logging for data operations

    Repositories only flush; committing is the service layer's job so that
    several repositories can take part in one transaction.
    """

    def __init__(self, db: Session, model: Type[ModelType], correlation_id: Optional[str] = None):
        """Initialize repository with database session and model type.

        Args:
            db: SQLAlchemy database session
            model: SQLAlchemy model class
            correlation_id: Optional request correlation ID for logging
        """
        self.db = db
        self.model = model
        self.correlation_id = correlation_id
        self.logger = logging.getLogger(self.__class__.__name__)

    def create(self, obj_in: CreateSchemaType, **kwargs: Any) -> ModelType:
        """Create a new record in the database.

        Args:
            obj_in: Pydantic model or dict with creation data
            **kwargs: Additional fields to set on the model

        Returns:
            Created model instance

        Raises:
            SQLAlchemyError: On database operation failure
        """
        try:
            if hasattr(obj_in, "model_dump"):
                obj_data = obj_in.model_dump(exclude_unset=True)
            else:
                obj_data = dict(obj_in)

            obj_data.update(kwargs)
            db_obj = self.model(**obj_data)

            self.db.add(db_obj)
            self.db.flush()
            self.db.refresh(db_obj)

            self._log_operation("create", model=self.model.__name__, id=getattr(db_obj, "id", None))
            return db_obj

        except SQLAlchemyError as e:
            self.logger.error(
                f"Failed to create {self.model.__name__}",
                extra={
                    "correlation_id": self.correlation_id,
                    "repository": self.__class__.__name__,
                    "error": str(e)
                }
            )
            raise

    def get_by_id(self, id: int, include_deleted: bool = False) -> Optional[ModelType]:
        """Get a record by ID.

        Args:
            id: Record ID
            include_deleted: Whether to include soft-deleted records

        Returns:
            Model instance or None if not found
        """
        query = self.db.query(self.model).filter(self.model.id == id)

        if not include_deleted and hasattr(self.model, "is_deleted"):
            query = query.filter(self.model.is_deleted == False)

        result = query.first()
        self._log_operation("get_by_id", model=self.model.__name__, id=id, found=result is not None)
        return result

    def update_fields(self, db_obj: ModelType, fields: Dict[str, Any]) -> ModelType:
        """Apply a partial update to an already loaded record.

        Args:
            db_obj: Loaded model instance
            fields: Column values to set; unknown names are ignored

        Returns:
            The updated instance
        """
        try:
            for field, value in fields.items():
                if hasattr(db_obj, field):
                    setattr(db_obj, field, value)
            self.db.flush()
            self._log_operation(
                "update_fields",
                model=self.model.__name__,
                id=getattr(db_obj, "id", None),
                fields=sorted(fields.keys())
            )
            return db_obj
        except SQLAlchemyError as e:
            self.logger.error(
                f"Failed to update {self.model.__name__}",
                extra={
                    "correlation_id": self.correlation_id,
                    "repository": self.__class__.__name__,
                    "error": str(e)
                }
            )
            raise

    def _log_operation(self, operation: str, **kwargs: Any) -> None:
        """Log repository operation with structured fields.

        Args:
            operation: Name of the operation being performed
            **kwargs: Additional fields to include in log
        """
        log_data = {
            "correlation_id": self.correlation_id,
            "repository": self.__class__.__name__,
            "operation": operation,
            **kwargs
        }
        self.logger.info(f"Repository operation: {operation}", extra=log_data)

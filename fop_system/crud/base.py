from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy.orm import Session

from fop_system.models.base import BaseModel as DBBaseModel

ModelType = TypeVar("ModelType", bound=DBBaseModel)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """
    Base class for data access on a SQLAlchemy model.

    Methods flush but never commit; the calling service owns the transaction.
    """
    def __init__(self, model: Type[ModelType]):
        """
        Initialize with SQLAlchemy model class.
        """
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        """
        Get an active record by ID.
        """
        return db.query(self.model).filter(
            self.model.id == id,
            self.model.is_active == True  # noqa: E712
        ).first()

    def get_multi(
        self, db: Session, *, skip: int = 0, limit: int = 100
    ) -> List[ModelType]:
        """
        Get multiple active records with pagination.
        """
        return self.model.get_active_query(db).order_by(self.model.created_at).offset(skip).limit(limit).all()

    def create(
        self,
        db: Session,
        *,
        obj_in: Union[CreateSchemaType, Dict[str, Any]],
        created_by: Optional[Any] = None
    ) -> ModelType:
        """
        Create a new record.
        """
        obj_in_data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
        db_obj = self.model(**obj_in_data)  # type: ignore
        if created_by is not None:
            db_obj.created_by = created_by
            db_obj.updated_by = created_by
        db.add(db_obj)
        db.flush()
        return db_obj

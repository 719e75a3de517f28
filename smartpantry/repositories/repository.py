from sqlalchemy import select
from sqlalchemy.orm import Session, InstrumentedAttribute
from typing import Generic, Type, TypeVar, List, Optional, Dict, Any, Sequence
from smartpantry.config import settings
from smartpantry.models.base import BaseModel

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """
    Base repository with common CRUD operations.

    Repositories only flush. Committing is left to the service that owns the
    unit of work, so several writes can land in one transaction.
    """

    def __init__(self, model: Type[T], db: Session):
        """
        Initialize repository with model and database session.

        Args:
            model: The SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    def get(self, id: int) -> Optional[T]:
        """Get a single record by ID."""
        return self.db.query(self.model).filter(self.model.id == id).first()

    def get_where_in(
        self, column: InstrumentedAttribute, values: Sequence[Any]
    ) -> List[T]:
        """
        Run a single "value in set" query.

        The store caps these at STORE_IN_QUERY_LIMIT values; callers are
        expected to batch larger sets.
        """
        if len(values) > settings.STORE_IN_QUERY_LIMIT:
            raise ValueError(
                f"'in' queries accept at most {settings.STORE_IN_QUERY_LIMIT} values, got {len(values)}"
            )
        if not values:
            return []
        stmt = select(self.model).where(column.in_(list(values)))
        return list(self.db.execute(stmt).scalars().all())

    def create(self, obj: T) -> T:
        """Stage a new record and flush it so generated keys are available."""
        self.db.add(obj)
        self.db.flush()
        return obj

    def update(self, id: int, data: Dict[str, Any]) -> Optional[T]:
        """Update a record by ID."""
        obj = self.get(id)
        if not obj:
            return None

        for key, value in data.items():
            if hasattr(obj, key):
                setattr(obj, key, value)

        self.db.flush()
        return obj

    def exists(self, id: int) -> bool:
        """Check if a record exists by ID."""
        return self.db.query(self.model).filter(self.model.id == id).count() > 0

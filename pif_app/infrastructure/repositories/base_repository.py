"""
Base Repository - Shared session handling for the stage repositories.

Repositories never commit on their own; the domain service that owns
the transaction calls commit() or rollback() on the session.
"""
from typing import Generic, TypeVar, Type
from sqlalchemy import func
from sqlalchemy.orm import Session

from pif_app.models import Base

T = TypeVar('T', bound=Base)


class BaseRepository(Generic[T]):
    """
    Base repository bound to one primary model.

    Type Parameters:
        T: The SQLAlchemy model type this repository manages
    """

    def __init__(self, session: Session, model_class: Type[T]):
        """
        Initialize the repository.

        Args:
            session: SQLAlchemy database session
            model_class: The primary model class (the project table of a stage)
        """
        self.session = session
        self.model_class = model_class

    def count(self) -> int:
        """Count rows of the primary model."""
        return self.session.query(func.count(self.model_class.id)).scalar() or 0

from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from ad_rewards.core.exceptions import DatabaseException
from ad_rewards.interfaces.repository import IRepository
from ad_rewards.utils.logger import get_logger

ModelType = TypeVar("ModelType", bound=SQLModel)

logger = get_logger(__name__)


class BaseSQLAlchemyRepository(IRepository, Generic[ModelType]):
    """
    Base repository for the mirror tables.

    Attributes:
        _model (Type[ModelType]): The model class associated with the repository.
        db (AsyncSession): The asynchronous database session.
    """

    _model: Type[ModelType]

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find(self, **kwargs: Any) -> Optional[ModelType]:
        """First row matching the filters, or None."""
        query = select(self._model).filter_by(**kwargs)
        try:
            result = await self.db.execute(query)
            return result.scalars().first()
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching {self._model.__name__}: {exc}")
            raise DatabaseException("An error occurred while fetching the object.") from exc

    async def existing(self, column: str, values: List[Any]) -> List[ModelType]:
        """
        Rows whose `column` is one of `values`.

        Args:
            column: name of a model column
            values: candidate values, an empty list skips the query

        Returns:
            List[ModelType]: matching rows
        """
        if not values:
            return []
        query = select(self._model).where(getattr(self._model, column).in_(values))
        try:
            result = await self.db.execute(query)
            return result.scalars().all()
        except SQLAlchemyError as exc:
            logger.error(f"Error fetching {self._model.__name__} objects by {column}: {exc}")
            raise DatabaseException("An error occurred while fetching objects.") from exc

    async def commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()  # <-- rollback transaction if error occurs
            logger.error(f"Database error during {action}: {exc}")
            raise DatabaseException(f"Database error during {action}: {exc}") from exc

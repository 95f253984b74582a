from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from purchasing.infrastructure.repositories import (
    SQLAlchemyOrderRepository,
    SQLAlchemyProductRepository,
    SQLAlchemyCategoryRepository,
    SQLAlchemyUserRepository,
    SQLAlchemyTokenRepository
)


class UnitOfWork:
    """Одна сессия на операцию; всё, что не закоммичено, откатывается на выходе"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self):
        async with self._session_factory() as session:
            work = _SessionWork(session)
            try:
                yield work
            finally:
                if session.in_transaction():
                    await session.rollback()


class _SessionWork:
    """Репозитории поверх общей сессии"""

    def __init__(self, session: AsyncSession):
        self.orders = SQLAlchemyOrderRepository(session)
        self.products = SQLAlchemyProductRepository(session)
        self.categories = SQLAlchemyCategoryRepository(session)
        self.users = SQLAlchemyUserRepository(session)
        self.tokens = SQLAlchemyTokenRepository(session)
        self.commit = session.commit
        self.rollback = session.rollback

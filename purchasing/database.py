import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from purchasing.config import settings

logger = logging.getLogger(__name__)


def build_engine(url: str):
    if not url:
        raise RuntimeError("Не задан DATABASE_URL / POSTGRES_CONNECTION_STRING")
    logger.info(f"Подключение к БД: {url.split('@')[-1]}")
    return create_async_engine(url, pool_pre_ping=True)


def build_session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, expire_on_commit=False)


engine = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


def init_db(url: str | None = None) -> async_sessionmaker[AsyncSession]:
    """Ленивая инициализация движка, чтобы импорт модуля не требовал БД"""
    global engine, AsyncSessionLocal
    if AsyncSessionLocal is None:
        engine = build_engine(url or settings.DATABASE_URL)
        AsyncSessionLocal = build_session_factory(engine)
    return AsyncSessionLocal


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return init_db()

import logging
from fastapi import FastAPI
from contextlib import asynccontextmanager

from purchasing.config import settings
from purchasing import database
from purchasing.infrastructure.db_schema import metadata
from purchasing.presentation.api import router as orders_router
from purchasing.presentation.catalog_api import router as catalog_router
from purchasing.presentation.users_api import router as users_router
from purchasing.presentation.errors import register_exception_handlers

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    database.init_db()

    # Создаем таблицы (в проде схему ведет Alembic)
    async with database.engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Таблицы созданы")

    yield

    logger.info("Приложение останавливается...")
    await database.engine.dispose()


def create_app(with_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Purchasing Service",
        description="Сервис закупок: пользователи, каталог и заказы",
        version="1.0.0",
        lifespan=lifespan if with_lifespan else None
    )

    app.include_router(users_router, prefix="/api")
    app.include_router(catalog_router, prefix="/api")
    app.include_router(orders_router, prefix="/api")
    register_exception_handlers(app)

    @app.get("/")
    async def root():
        return {"message": "Purchasing Service работает"}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


app = create_app()

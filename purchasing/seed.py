"""Заполнение БД начальными данными: администратор, категории, товары и заказы.

Запуск: python -m purchasing.seed
"""
import asyncio
import logging
import random
from decimal import Decimal

from purchasing.config import settings
from purchasing import database
from purchasing.infrastructure.db_schema import metadata
from purchasing.infrastructure.security import BcryptPasswordHasher
from purchasing.infrastructure.unit_of_work import UnitOfWork
from purchasing.domain.models import Category, OrderStatus, Product, User, ROLE_ADMIN, ROLE_USER
from purchasing.domain.factories import new_order, new_order_line, stamp_created, utcnow

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

CATEGORY_NAMES = ["Tisane", "Complément", "Epice", "Alimentaire"]
PRODUCTS_PER_CATEGORY = 5
SAMPLE_ORDER_STATUSES = [OrderStatus.PENDING, OrderStatus.APPROVED, OrderStatus.COMPLETED]


def build_products(category: Category) -> list[Product]:
    products = []
    for i in range(1, PRODUCTS_PER_CATEGORY + 1):
        products.append(
            Product(
                name=f"{category.name} produit {i}",
                description=f"Description du produit {i} avec la catégorie {category.name}",
                price=Decimal(f"{100 + i * 10}.99"),
                sku=f"{category.name[:3].upper()}-{i:03d}",
                stock=random.randint(5, 100),
                is_active=True,
                category_id=category.id,
                created_at=utcnow(),
            )
        )
    return products


async def seed_orders(work, customer_id: int, products: list[Product]) -> None:
    """Примеры заказов: по две строки из первых товаров каталога"""
    for number, status in enumerate(SAMPLE_ORDER_STATUSES, start=1):
        order = new_order(customer_id)
        order.status = status
        order.notes = f"Commande numéro {number}"
        for quantity, product in enumerate(products[:2], start=1):
            order.add_line(new_order_line(product, quantity))
        order.recalculate_total()
        stamp_created(order)

        order.id = await work.orders.create(order)
        for line in order.lines:
            line.id = await work.orders.add_line(order.id, line)
        logger.info(f"Заказ {order.order_number} ({status.value}) создан")


async def seed(uow) -> None:
    hasher = BcryptPasswordHasher()

    async with uow() as work:
        if await work.users.get_by_email(settings.ADMIN_EMAIL):
            logger.info("Данные уже загружены")
            return

        admin = User(
            email=settings.ADMIN_EMAIL,
            roles=[ROLE_USER, ROLE_ADMIN],
            first_name="Admin",
            last_name="Admin",
            password_hash=hasher.hash(settings.ADMIN_PASSWORD),
            created_at=utcnow(),
        )
        admin.id = await work.users.create(admin)
        logger.info(f"Администратор {admin.email} создан")

        catalog = []
        for name in CATEGORY_NAMES:
            category = Category(name=name, description=f"Description de la catégorie {name}", created_at=utcnow())
            category.id = await work.categories.create(category)
            for product in build_products(category):
                product.id = await work.products.create(product)
                catalog.append(product)
            logger.info(f"Категория {name}: {PRODUCTS_PER_CATEGORY} товаров")

        await seed_orders(work, admin.id, catalog)

        await work.commit()


async def main():
    session_factory = database.init_db()
    async with database.engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    await seed(UnitOfWork(session_factory))
    await database.engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())

import hashlib
from datetime import datetime
from typing import Optional, List
from sqlalchemy import select, insert, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from purchasing.domain.models import Order, OrderLine, OrderStatus, Product, Category, User
from purchasing.domain.exceptions import ConflictError
from purchasing.infrastructure.db_schema import (
    orders_tbl, order_lines_tbl, products_tbl, categories_tbl, users_tbl, access_tokens_tbl
)
from purchasing.application.interfaces import (
    OrderListQuery, OrderRepository, ProductRepository, CategoryRepository, UserRepository, TokenRepository
)

ORDERINGS = {
    "orderDate": orders_tbl.c.order_date.asc(),
    "-orderDate": orders_tbl.c.order_date.desc(),
    "totalAmount": orders_tbl.c.total_amount.asc(),
    "-totalAmount": orders_tbl.c.total_amount.desc(),
}


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(
                orders_tbl.c.id == order_id,
                orders_tbl.c.deleted_at.is_(None)
            )
        )
        row = result.fetchone()
        if not row:
            return None
        lines = await self._load_lines([row.id])
        return self._to_domain(row, lines.get(row.id, []))

    async def list(self, query: OrderListQuery) -> List[Order]:
        stmt = select(orders_tbl).where(orders_tbl.c.deleted_at.is_(None))

        if query.customer_id is not None:
            stmt = stmt.where(orders_tbl.c.customer_id == query.customer_id)
        if query.order_number:
            stmt = stmt.where(orders_tbl.c.order_number == query.order_number)
        if query.status is not None:
            stmt = stmt.where(orders_tbl.c.status == query.status)
        if query.customer_email:
            stmt = stmt.join(users_tbl, users_tbl.c.id == orders_tbl.c.customer_id).where(
                users_tbl.c.email.ilike(f"%{query.customer_email}%")
            )
        if query.order_date_after:
            stmt = stmt.where(orders_tbl.c.order_date >= query.order_date_after)
        if query.order_date_before:
            stmt = stmt.where(orders_tbl.c.order_date <= query.order_date_before)

        stmt = stmt.order_by(ORDERINGS.get(query.ordering, orders_tbl.c.id.asc()), orders_tbl.c.id.asc())

        result = await self._session.execute(stmt)
        rows = result.fetchall()
        lines = await self._load_lines([row.id for row in rows])
        return [self._to_domain(row, lines.get(row.id, [])) for row in rows]

    async def create(self, order: Order) -> int:
        stmt = insert(orders_tbl).values(
            customer_id=order.customer_id,
            order_number=order.order_number,
            order_date=order.order_date,
            status=order.status,
            total_amount=order.total_amount,
            notes=order.notes,
            is_active=order.is_active,
            created_at=order.created_at
        )
        try:
            result = await self._session.execute(stmt)
        except IntegrityError as e:
            raise ConflictError(f"Заказ с номером {order.order_number} уже существует") from e
        return result.inserted_primary_key[0]

    async def update(self, order: Order) -> None:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order.id)
            .values(
                customer_id=order.customer_id,
                status=order.status,
                total_amount=order.total_amount,
                notes=order.notes,
                is_active=order.is_active,
                updated_at=order.updated_at
            )
        )
        await self._session.execute(stmt)

    async def add_line(self, order_id: int, line: OrderLine) -> int:
        stmt = insert(order_lines_tbl).values(
            order_id=order_id,
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total_price
        )
        result = await self._session.execute(stmt)
        return result.inserted_primary_key[0]

    async def delete_lines(self, order_id: int) -> int:
        result = await self._session.execute(
            delete(order_lines_tbl).where(order_lines_tbl.c.order_id == order_id)
        )
        return result.rowcount

    async def soft_delete(self, order_id: int, deleted_at: datetime) -> None:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id)
            .values(deleted_at=deleted_at, is_active=False)
        )
        await self._session.execute(stmt)

    async def _load_lines(self, order_ids: List[int]) -> dict:
        if not order_ids:
            return {}
        result = await self._session.execute(
            select(order_lines_tbl)
            .where(order_lines_tbl.c.order_id.in_(order_ids))
            .order_by(order_lines_tbl.c.id.asc())
        )
        lines: dict = {}
        for row in result.fetchall():
            lines.setdefault(row.order_id, []).append(
                OrderLine(
                    id=row.id,
                    order_id=row.order_id,
                    product_id=row.product_id,
                    quantity=row.quantity,
                    unit_price=row.unit_price,
                    total_price=row.total_price
                )
            )
        return lines

    def _to_domain(self, row, lines: List[OrderLine]) -> Order:
        """Трансформация DB → Domain"""
        return Order(
            id=row.id,
            order_number=row.order_number,
            order_date=row.order_date,
            status=OrderStatus(row.status),
            total_amount=row.total_amount,
            notes=row.notes,
            customer_id=row.customer_id,
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
            deleted_at=row.deleted_at,
            lines=lines
        )


class SQLAlchemyProductRepository(ProductRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, product_id: int) -> Optional[Product]:
        result = await self._session.execute(
            select(products_tbl).where(
                products_tbl.c.id == product_id,
                products_tbl.c.deleted_at.is_(None)
            )
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_sku(self, sku: str) -> Optional[Product]:
        result = await self._session.execute(
            select(products_tbl).where(
                products_tbl.c.sku == sku,
                products_tbl.c.deleted_at.is_(None)
            )
        )
        row = result.first()
        return self._to_domain(row) if row else None

    async def list(self, category_id: Optional[int] = None) -> List[Product]:
        stmt = select(products_tbl).where(products_tbl.c.deleted_at.is_(None))
        if category_id is not None:
            stmt = stmt.where(products_tbl.c.category_id == category_id)
        result = await self._session.execute(stmt.order_by(products_tbl.c.id.asc()))
        return [self._to_domain(row) for row in result.fetchall()]

    async def create(self, product: Product) -> int:
        stmt = insert(products_tbl).values(
            category_id=product.category_id,
            name=product.name,
            description=product.description,
            price=product.price,
            sku=product.sku,
            stock=product.stock,
            image=product.image,
            is_active=product.is_active,
            created_at=product.created_at
        )
        result = await self._session.execute(stmt)
        return result.inserted_primary_key[0]

    async def update(self, product: Product) -> None:
        stmt = (
            update(products_tbl)
            .where(products_tbl.c.id == product.id)
            .values(
                category_id=product.category_id,
                name=product.name,
                description=product.description,
                price=product.price,
                sku=product.sku,
                stock=product.stock,
                image=product.image,
                is_active=product.is_active,
                updated_at=product.updated_at
            )
        )
        await self._session.execute(stmt)

    async def soft_delete(self, product_id: int, deleted_at: datetime) -> None:
        stmt = (
            update(products_tbl)
            .where(products_tbl.c.id == product_id)
            .values(deleted_at=deleted_at)
        )
        await self._session.execute(stmt)

    def _to_domain(self, row) -> Product:
        return Product(
            id=row.id,
            name=row.name,
            description=row.description,
            price=row.price,
            sku=row.sku,
            stock=row.stock,
            is_active=row.is_active,
            image=row.image,
            category_id=row.category_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
            deleted_at=row.deleted_at
        )


class SQLAlchemyCategoryRepository(CategoryRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, category_id: int) -> Optional[Category]:
        result = await self._session.execute(
            select(categories_tbl).where(
                categories_tbl.c.id == category_id,
                categories_tbl.c.deleted_at.is_(None)
            )
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def list(self) -> List[Category]:
        result = await self._session.execute(
            select(categories_tbl)
            .where(categories_tbl.c.deleted_at.is_(None))
            .order_by(categories_tbl.c.id.asc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def create(self, category: Category) -> int:
        stmt = insert(categories_tbl).values(
            name=category.name,
            description=category.description,
            created_at=category.created_at
        )
        result = await self._session.execute(stmt)
        return result.inserted_primary_key[0]

    async def update(self, category: Category) -> None:
        stmt = (
            update(categories_tbl)
            .where(categories_tbl.c.id == category.id)
            .values(
                name=category.name,
                description=category.description,
                updated_at=category.updated_at
            )
        )
        await self._session.execute(stmt)

    async def soft_delete(self, category_id: int, deleted_at: datetime) -> None:
        stmt = (
            update(categories_tbl)
            .where(categories_tbl.c.id == category_id)
            .values(deleted_at=deleted_at)
        )
        await self._session.execute(stmt)

    def _to_domain(self, row) -> Category:
        return Category(
            id=row.id,
            name=row.name,
            description=row.description,
            created_at=row.created_at,
            updated_at=row.updated_at,
            deleted_at=row.deleted_at
        )


class SQLAlchemyUserRepository(UserRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, user_id: int) -> Optional[User]:
        result = await self._session.execute(
            select(users_tbl).where(
                users_tbl.c.id == user_id,
                users_tbl.c.deleted_at.is_(None)
            )
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_email(self, email: str) -> Optional[User]:
        # Без фильтра deleted_at: email уникален среди всех записей
        result = await self._session.execute(
            select(users_tbl).where(users_tbl.c.email == email)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def list(self) -> List[User]:
        result = await self._session.execute(
            select(users_tbl)
            .where(users_tbl.c.deleted_at.is_(None))
            .order_by(users_tbl.c.id.asc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def create(self, user: User) -> int:
        stmt = insert(users_tbl).values(
            email=user.email,
            roles=user.roles,
            password_hash=user.password_hash,
            first_name=user.first_name,
            last_name=user.last_name,
            is_active=user.is_active,
            created_at=user.created_at
        )
        try:
            result = await self._session.execute(stmt)
        except IntegrityError as e:
            raise ConflictError(f"Пользователь с email {user.email} уже существует") from e
        return result.inserted_primary_key[0]

    async def update(self, user: User) -> None:
        stmt = (
            update(users_tbl)
            .where(users_tbl.c.id == user.id)
            .values(
                email=user.email,
                roles=user.roles,
                password_hash=user.password_hash,
                first_name=user.first_name,
                last_name=user.last_name,
                is_active=user.is_active,
                updated_at=user.updated_at
            )
        )
        await self._session.execute(stmt)

    async def soft_delete(self, user_id: int, deleted_at: datetime) -> None:
        stmt = (
            update(users_tbl)
            .where(users_tbl.c.id == user_id)
            .values(deleted_at=deleted_at, is_active=False)
        )
        await self._session.execute(stmt)

    def _to_domain(self, row) -> User:
        return User(
            id=row.id,
            email=row.email,
            roles=list(row.roles or []),
            first_name=row.first_name,
            last_name=row.last_name,
            password_hash=row.password_hash,
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
            deleted_at=row.deleted_at
        )


class SQLAlchemyTokenRepository(TokenRepository):
    """В БД хранится только sha256 от токена"""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, token: str, user_id: int, expires_at: datetime) -> None:
        stmt = insert(access_tokens_tbl).values(
            token_hash=self._digest(token),
            user_id=user_id,
            expires_at=expires_at
        )
        await self._session.execute(stmt)

    async def get_user_id(self, token: str, now: datetime) -> Optional[int]:
        result = await self._session.execute(
            select(access_tokens_tbl.c.user_id).where(
                access_tokens_tbl.c.token_hash == self._digest(token),
                access_tokens_tbl.c.expires_at > now
            )
        )
        row = result.fetchone()
        return row.user_id if row else None

    @staticmethod
    def _digest(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

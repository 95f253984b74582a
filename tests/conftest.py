import copy
from contextlib import asynccontextmanager
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from purchasing.domain.models import Caller, Category, Product, User, ROLE_ADMIN, ROLE_USER
from purchasing.domain.factories import utcnow
from purchasing.database import build_session_factory
from purchasing.infrastructure.db_schema import metadata
from purchasing.infrastructure.security import BcryptPasswordHasher
from purchasing.infrastructure.unit_of_work import UnitOfWork
from purchasing.application.interfaces import OrderListQuery
from purchasing.main import create_app
from purchasing.presentation.dependencies import get_password_hasher, get_unit_of_work


# In-memory реализация интерфейсов application-слоя

class InMemoryStore:
    def __init__(self):
        self.orders = {}
        self.lines = {}
        self.products = {}
        self.categories = {}
        self.users = {}
        self.tokens = {}
        self.next_id = 1
        self.fail_on_add_line = False

    def new_id(self) -> int:
        value = self.next_id
        self.next_id += 1
        return value

    def snapshot(self) -> dict:
        return copy.deepcopy({k: v for k, v in self.__dict__.items() if k != "fail_on_add_line"})

    def restore(self, state: dict) -> None:
        self.__dict__.update(copy.deepcopy(state))


class FakeOrderRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def get_by_id(self, order_id):
        order = self._store.orders.get(order_id)
        if not order or order.deleted_at:
            return None
        result = order.model_copy(deep=True)
        result.lines = [
            line.model_copy() for line in sorted(self._store.lines.values(), key=lambda l: l.id)
            if line.order_id == order_id
        ]
        return result

    async def list(self, query: OrderListQuery):
        orders = [await self.get_by_id(order_id) for order_id in sorted(self._store.orders)]
        orders = [order for order in orders if order]
        if query.customer_id is not None:
            orders = [order for order in orders if order.customer_id == query.customer_id]
        if query.status is not None:
            orders = [order for order in orders if order.status == query.status]
        if query.order_number:
            orders = [order for order in orders if order.order_number == query.order_number]
        return orders

    async def create(self, order):
        order_id = self._store.new_id()
        stored = order.model_copy(deep=True, update={"id": order_id, "lines": []})
        self._store.orders[order_id] = stored
        return order_id

    async def update(self, order):
        self._store.orders[order.id] = order.model_copy(deep=True, update={"lines": []})

    async def add_line(self, order_id, line):
        if self._store.fail_on_add_line:
            raise RuntimeError("запись строки не удалась")
        line_id = self._store.new_id()
        self._store.lines[line_id] = line.model_copy(update={"id": line_id, "order_id": order_id})
        return line_id

    async def delete_lines(self, order_id):
        doomed = [line_id for line_id, line in self._store.lines.items() if line.order_id == order_id]
        for line_id in doomed:
            del self._store.lines[line_id]
        return len(doomed)

    async def soft_delete(self, order_id, deleted_at):
        self._store.orders[order_id].deleted_at = deleted_at


class _FakeSimpleRepository:
    attribute = ""

    def __init__(self, store: InMemoryStore):
        self._store = store

    @property
    def _items(self) -> dict:
        return getattr(self._store, self.attribute)

    async def get_by_id(self, item_id):
        item = self._items.get(item_id)
        if not item or item.deleted_at:
            return None
        return item.model_copy(deep=True)

    async def list(self, **filters):
        return [item.model_copy(deep=True) for item in self._items.values() if not item.deleted_at]

    async def create(self, item):
        item_id = self._store.new_id()
        self._items[item_id] = item.model_copy(deep=True, update={"id": item_id})
        return item_id

    async def update(self, item):
        self._items[item.id] = item.model_copy(deep=True)

    async def soft_delete(self, item_id, deleted_at):
        self._items[item_id].deleted_at = deleted_at


class FakeProductRepository(_FakeSimpleRepository):
    attribute = "products"

    async def get_by_sku(self, sku):
        for item in self._items.values():
            if item.sku == sku and not item.deleted_at:
                return item.model_copy()
        return None

    async def list(self, category_id=None):
        items = await super().list()
        if category_id is not None:
            items = [item for item in items if item.category_id == category_id]
        return items


class FakeCategoryRepository(_FakeSimpleRepository):
    attribute = "categories"


class FakeUserRepository(_FakeSimpleRepository):
    attribute = "users"

    async def get_by_email(self, email):
        for item in self._items.values():
            if item.email == email:
                return item.model_copy()
        return None


class FakeTokenRepository:
    def __init__(self, store: InMemoryStore):
        self._store = store

    async def create(self, token, user_id, expires_at):
        self._store.tokens[token] = (user_id, expires_at)

    async def get_user_id(self, token, now):
        entry = self._store.tokens.get(token)
        if not entry or entry[1] <= now:
            return None
        return entry[0]


class _FakeUnitOfWorkImpl:
    def __init__(self, store: InMemoryStore, on_commit):
        self.orders = FakeOrderRepository(store)
        self.products = FakeProductRepository(store)
        self.categories = FakeCategoryRepository(store)
        self.users = FakeUserRepository(store)
        self.tokens = FakeTokenRepository(store)
        self._on_commit = on_commit

    async def commit(self):
        self._on_commit()

    async def rollback(self):
        pass


class FakeUnitOfWork:
    """Изменения без commit откатываются при выходе из контекста"""

    def __init__(self, store: InMemoryStore):
        self.store = store
        self.commits = 0

    @asynccontextmanager
    async def __call__(self):
        committed = self.store.snapshot()

        def on_commit():
            nonlocal committed
            committed = self.store.snapshot()
            self.commits += 1

        try:
            yield _FakeUnitOfWorkImpl(self.store, on_commit)
        finally:
            self.store.restore(committed)


@pytest.fixture
def store():
    store = InMemoryStore()
    store.users[1] = User(id=1, email="admin@example.com", roles=[ROLE_USER, ROLE_ADMIN], first_name="Ada", last_name="Admin")
    store.users[2] = User(id=2, email="alice@example.com", first_name="Alice", last_name="Martin")
    store.users[3] = User(id=3, email="bob@example.com", first_name="Bob", last_name="Durand")
    store.categories[4] = Category(id=4, name="Tisane")
    store.products[10] = Product(id=10, name="P1", price=Decimal("10.00"), sku="TIS-001", stock=10, category_id=4)
    store.products[11] = Product(id=11, name="P2", price=Decimal("5.50"), sku="TIS-002", stock=10, category_id=4)
    store.products[12] = Product(id=12, name="P3", price=Decimal("0.10"), sku="TIS-003", stock=10, category_id=4)
    store.next_id = 100
    return store


@pytest.fixture
def uow(store):
    return FakeUnitOfWork(store)


@pytest.fixture
def admin():
    return Caller(id=1, email="admin@example.com", roles=[ROLE_USER, ROLE_ADMIN])


@pytest.fixture
def alice():
    return Caller(id=2, email="alice@example.com", roles=[ROLE_USER])


@pytest.fixture
def bob():
    return Caller(id=3, email="bob@example.com", roles=[ROLE_USER])


# Интеграционные фикстуры: FastAPI + SQLite

PASSWORD = "secret"


@pytest.fixture
def password():
    return PASSWORD


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def hasher():
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
async def seeded(session_factory, hasher):
    """Пользователи admin/alice/bob, категория и два товара в SQLite"""
    ids = {}
    sql_uow = UnitOfWork(session_factory)
    async with sql_uow() as work:
        for key, roles in (("admin", [ROLE_USER, ROLE_ADMIN]), ("alice", [ROLE_USER]), ("bob", [ROLE_USER])):
            ids[key] = await work.users.create(User(
                email=f"{key}@example.com",
                roles=roles,
                first_name=key.title(),
                last_name="Test",
                password_hash=hasher.hash(PASSWORD),
                created_at=utcnow()
            ))
        ids["category"] = await work.categories.create(Category(name="Tisane", created_at=utcnow()))
        ids["p1"] = await work.products.create(Product(
            name="P1", price=Decimal("10.00"), sku="TIS-001", stock=10, category_id=ids["category"], created_at=utcnow()
        ))
        ids["p2"] = await work.products.create(Product(
            name="P2", price=Decimal("5.50"), sku="TIS-002", stock=10, category_id=ids["category"], created_at=utcnow()
        ))
        await work.commit()
    return ids


@pytest.fixture
async def client(session_factory, seeded, hasher):
    app = create_app(with_lifespan=False)
    app.dependency_overrides[get_unit_of_work] = lambda: UnitOfWork(session_factory)
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


async def login(client, who: str) -> dict:
    response = await client.post("/api/login_check", json={"email": f"{who}@example.com", "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
async def admin_headers(client):
    return await login(client, "admin")


@pytest.fixture
async def alice_headers(client):
    return await login(client, "alice")


@pytest.fixture
async def bob_headers(client):
    return await login(client, "bob")

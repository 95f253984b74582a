from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel

from purchasing.domain.models import Order, OrderLine, OrderStatus, Product, Category, User


class OrderListQuery(BaseModel):
    """Фильтры и сортировка списка заказов"""
    customer_id: Optional[int] = None
    order_number: Optional[str] = None
    status: Optional[OrderStatus] = None
    customer_email: Optional[str] = None
    order_date_after: Optional[date] = None
    order_date_before: Optional[date] = None
    ordering: Optional[str] = None


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def list(self, query: OrderListQuery) -> List[Order]:
        pass

    @abstractmethod
    async def create(self, order: Order) -> int:
        pass

    @abstractmethod
    async def update(self, order: Order) -> None:
        pass

    @abstractmethod
    async def add_line(self, order_id: int, line: OrderLine) -> int:
        pass

    @abstractmethod
    async def delete_lines(self, order_id: int) -> int:
        pass

    @abstractmethod
    async def soft_delete(self, order_id: int, deleted_at: datetime) -> None:
        pass


class ProductRepository(ABC):
    @abstractmethod
    async def get_by_id(self, product_id: int) -> Optional[Product]:
        pass

    @abstractmethod
    async def get_by_sku(self, sku: str) -> Optional[Product]:
        pass

    @abstractmethod
    async def list(self, category_id: Optional[int] = None) -> List[Product]:
        pass

    @abstractmethod
    async def create(self, product: Product) -> int:
        pass

    @abstractmethod
    async def update(self, product: Product) -> None:
        pass

    @abstractmethod
    async def soft_delete(self, product_id: int, deleted_at: datetime) -> None:
        pass


class CategoryRepository(ABC):
    @abstractmethod
    async def get_by_id(self, category_id: int) -> Optional[Category]:
        pass

    @abstractmethod
    async def list(self) -> List[Category]:
        pass

    @abstractmethod
    async def create(self, category: Category) -> int:
        pass

    @abstractmethod
    async def update(self, category: Category) -> None:
        pass

    @abstractmethod
    async def soft_delete(self, category_id: int, deleted_at: datetime) -> None:
        pass


class UserRepository(ABC):
    @abstractmethod
    async def get_by_id(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def list(self) -> List[User]:
        pass

    @abstractmethod
    async def create(self, user: User) -> int:
        pass

    @abstractmethod
    async def update(self, user: User) -> None:
        pass

    @abstractmethod
    async def soft_delete(self, user_id: int, deleted_at: datetime) -> None:
        pass


class TokenRepository(ABC):
    @abstractmethod
    async def create(self, token: str, user_id: int, expires_at: datetime) -> None:
        pass

    @abstractmethod
    async def get_user_id(self, token: str, now: datetime) -> Optional[int]:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @property
    @abstractmethod
    def products(self) -> ProductRepository:
        pass

    @property
    @abstractmethod
    def categories(self) -> CategoryRepository:
        pass

    @property
    @abstractmethod
    def users(self) -> UserRepository:
        pass

    @property
    @abstractmethod
    def tokens(self) -> TokenRepository:
        pass

    @abstractmethod
    async def __call__(self):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class PasswordHasher(ABC):
    @abstractmethod
    def hash(self, password: str) -> str:
        pass

    @abstractmethod
    def verify(self, password: str, password_hash: str) -> bool:
        pass

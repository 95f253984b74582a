from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

CENT = Decimal("0.01")

ROLE_USER = "ROLE_USER"
ROLE_ADMIN = "ROLE_ADMIN"


def to_money(value) -> Decimal:
    """Денежное значение с фиксированной точностью 2 знака"""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class OrderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class User(BaseModel):
    """Domain Entity — пользователь"""
    id: Optional[int] = None
    email: str
    roles: list[str] = Field(default_factory=lambda: [ROLE_USER])
    first_name: str
    last_name: str
    password_hash: str = ""
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles


class Caller(BaseModel):
    """Аутентифицированный пользователь, от имени которого выполняется операция"""
    id: int
    email: str
    roles: list[str] = Field(default_factory=lambda: [ROLE_USER])

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles

    @classmethod
    def from_user(cls, user: User) -> "Caller":
        return cls(id=user.id, email=user.email, roles=list(user.roles))


class Category(BaseModel):
    id: Optional[int] = None
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class Product(BaseModel):
    """Value Object для заказа: товар из каталога"""
    id: Optional[int] = None
    name: str
    description: Optional[str] = None
    price: Decimal
    sku: str
    stock: int = 0
    is_active: bool = True
    image: Optional[str] = None
    category_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class OrderLine(BaseModel):
    """Строка заказа. Цены являются снимком цены товара на момент создания строки"""
    id: Optional[int] = None
    order_id: Optional[int] = None
    product_id: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class Order(BaseModel):
    """Domain Entity — заказ"""
    id: Optional[int] = None
    order_number: Optional[str] = None
    order_date: date
    status: OrderStatus = OrderStatus.PENDING
    total_amount: Decimal = Decimal("0.00")
    notes: Optional[str] = None
    customer_id: int
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    lines: list[OrderLine] = Field(default_factory=list)

    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING

    def is_owned_by(self, user_id: int) -> bool:
        return self.customer_id == user_id

    def clear_lines(self) -> list[OrderLine]:
        """Отцепляет все строки и возвращает их, чтобы удалить из хранилища"""
        removed = self.lines
        self.lines = []
        return removed

    def add_line(self, line: OrderLine) -> None:
        line.order_id = self.id
        self.lines.append(line)

    def recalculate_total(self) -> Decimal:
        """Бизнес-правило: сумма заказа равна сумме строк"""
        self.total_amount = to_money(sum((line.total_price for line in self.lines), Decimal("0")))
        return self.total_amount

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Union

from purchasing.domain.models import OrderStatus
from purchasing.application.reconcile_order import LinePayload, OrderPayload
from purchasing.application.manage_catalog import CategoryDTO, ProductDTO
from purchasing.application.manage_users import UserDTO


class ApiModel(BaseModel):
    """camelCase в JSON, snake_case в коде"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


Ref = Union[int, str, None]


# Заказы

class ProductOrderRequest(ApiModel):
    product: Ref = None
    quantity: int = Field(default=1, gt=0)


class OrderRequest(ApiModel):
    product_orders: Optional[list[ProductOrderRequest]] = None
    notes: Optional[str] = None
    status: Optional[OrderStatus] = None
    customer: Ref = None
    allow_empty: bool = False

    def to_payload(self) -> OrderPayload:
        lines = None
        if self.product_orders is not None:
            lines = [LinePayload(product=line.product, quantity=line.quantity) for line in self.product_orders]
        return OrderPayload(
            lines=lines,
            status=self.status,
            notes=self.notes,
            customer=self.customer,
            allow_empty=self.allow_empty
        )


class ProductOrderResponse(ApiModel):
    id: int
    product: int
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class OrderResponse(ApiModel):
    id: int
    order_number: str
    order_date: date
    status: OrderStatus
    total_amount: Decimal
    notes: Optional[str] = None
    is_active: bool
    customer: int
    product_orders: list[ProductOrderResponse]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, order, warnings: Optional[list[str]] = None):
        return cls(
            id=order.id,
            order_number=order.order_number,
            order_date=order.order_date,
            status=order.status,
            total_amount=order.total_amount,
            notes=order.notes,
            is_active=order.is_active,
            customer=order.customer_id,
            product_orders=[
                ProductOrderResponse(
                    id=line.id,
                    product=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line.total_price
                )
                for line in order.lines
            ],
            created_at=order.created_at,
            updated_at=order.updated_at,
            warnings=warnings or []
        )


# Каталог

class CategoryRequest(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None

    def to_dto(self) -> CategoryDTO:
        return CategoryDTO(**self.model_dump(exclude_unset=True))


class CategoryResponse(ApiModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, category):
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            created_at=category.created_at,
            updated_at=category.updated_at
        )


class ProductRequest(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    sku: Optional[str] = None
    stock: Optional[int] = None
    is_active: Optional[bool] = None
    image: Optional[str] = None
    category: Ref = None

    def to_dto(self) -> ProductDTO:
        return ProductDTO(**self.model_dump(exclude_unset=True))


class ProductResponse(ApiModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    sku: str
    stock: int
    is_active: bool
    image: Optional[str] = None
    category: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, product):
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            sku=product.sku,
            stock=product.stock,
            is_active=product.is_active,
            image=product.image,
            category=product.category_id,
            created_at=product.created_at,
            updated_at=product.updated_at
        )


# Пользователи и аутентификация

class UserRequest(ApiModel):
    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    roles: Optional[list[str]] = None
    is_active: Optional[bool] = None

    def to_dto(self) -> UserDTO:
        return UserDTO(**self.model_dump(exclude_unset=True))


class UserResponse(ApiModel):
    id: int
    email: str
    roles: list[str]
    first_name: str
    last_name: str
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, user):
        return cls(
            id=user.id,
            email=user.email,
            roles=user.roles,
            first_name=user.first_name,
            last_name=user.last_name,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at
        )


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginUser(BaseModel):
    id: int
    email: str
    roles: list[str]


class LoginResponse(BaseModel):
    token: str
    user: LoginUser


class ErrorResponse(BaseModel):
    detail: str

import logging
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field

from purchasing.domain.models import Caller, Category, Product, to_money
from purchasing.domain.exceptions import ConflictError, NotFoundError, ValidationError
from purchasing.domain.factories import utcnow
from purchasing.domain.policy import ensure_admin
from purchasing.application.reconcile_order import Ref, parse_ref

logger = logging.getLogger(__name__)


class CategoryDTO(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None


class ProductDTO(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    sku: Optional[str] = Field(default=None, min_length=1, max_length=50)
    stock: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None
    image: Optional[str] = None
    category: Ref = None


def _require(dto: BaseModel, *fields: str) -> None:
    missing = [name for name in fields if getattr(dto, name) is None]
    if missing:
        raise ValidationError(f"Обязательные поля не заполнены: {', '.join(missing)}")


class CategoryCatalog:
    """CRUD категорий. Читать может любой пользователь, изменять только администратор"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def list(self) -> List[Category]:
        async with self._uow() as uow:
            return await uow.categories.list()

    async def get(self, category_id: int) -> Category:
        async with self._uow() as uow:
            category = await uow.categories.get_by_id(category_id)
            if not category:
                raise NotFoundError(f"Категория {category_id} не найдена")
            return category

    async def create(self, dto: CategoryDTO, caller: Caller) -> Category:
        ensure_admin(caller, "Только администраторы могут создавать категории")
        _require(dto, "name")
        category = Category(name=dto.name, description=dto.description, created_at=utcnow())
        async with self._uow() as uow:
            category.id = await uow.categories.create(category)
            await uow.commit()
        logger.info(f"Категория {category.id} создана")
        return category

    async def update(self, category_id: int, dto: CategoryDTO, caller: Caller, partial: bool = False) -> Category:
        ensure_admin(caller, "Только администраторы могут изменять категории")
        if not partial:
            _require(dto, "name")
        async with self._uow() as uow:
            category = await uow.categories.get_by_id(category_id)
            if not category:
                raise NotFoundError(f"Категория {category_id} не найдена")
            changes = dto.model_dump(exclude_unset=partial)
            for key, value in changes.items():
                if key == "name" and value is None:
                    continue
                setattr(category, key, value)
            category.updated_at = utcnow()
            await uow.categories.update(category)
            await uow.commit()
        return category

    async def delete(self, category_id: int, caller: Caller) -> None:
        ensure_admin(caller, "Только администраторы могут удалять категории")
        async with self._uow() as uow:
            if not await uow.categories.get_by_id(category_id):
                raise NotFoundError(f"Категория {category_id} не найдена")
            await uow.categories.soft_delete(category_id, utcnow())
            await uow.commit()
        logger.info(f"Категория {category_id} удалена")


class ProductCatalog:
    """CRUD товаров. Читать может любой пользователь, изменять только администратор"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def list(self, category_id: Optional[int] = None) -> List[Product]:
        async with self._uow() as uow:
            return await uow.products.list(category_id=category_id)

    async def get(self, product_id: int) -> Product:
        async with self._uow() as uow:
            product = await uow.products.get_by_id(product_id)
            if not product:
                raise NotFoundError(f"Товар {product_id} не найден")
            return product

    async def create(self, dto: ProductDTO, caller: Caller) -> Product:
        ensure_admin(caller, "Только администраторы могут создавать товары")
        _require(dto, "name", "price", "sku", "category")
        async with self._uow() as uow:
            category_id = await self._resolve_category(uow, dto.category)
            await self._ensure_unique_sku(uow, dto.sku)
            product = Product(
                name=dto.name,
                description=dto.description,
                price=to_money(dto.price),
                sku=dto.sku,
                stock=dto.stock or 0,
                is_active=True if dto.is_active is None else dto.is_active,
                image=dto.image,
                category_id=category_id,
                created_at=utcnow(),
            )
            product.id = await uow.products.create(product)
            await uow.commit()
        logger.info(f"Товар {product.id} ({product.sku}) создан, цена {product.price}")
        return product

    async def update(self, product_id: int, dto: ProductDTO, caller: Caller, partial: bool = False) -> Product:
        ensure_admin(caller, "Только администраторы могут изменять товары")
        if not partial:
            _require(dto, "name", "price", "sku", "category")
        async with self._uow() as uow:
            product = await uow.products.get_by_id(product_id)
            if not product:
                raise NotFoundError(f"Товар {product_id} не найден")
            changes = dto.model_dump(exclude_unset=partial)
            if "category" in changes:
                product.category_id = await self._resolve_category(uow, changes.pop("category"))
            if changes.get("sku") and changes["sku"] != product.sku:
                await self._ensure_unique_sku(uow, changes["sku"])
            if changes.get("price") is not None:
                changes["price"] = to_money(changes["price"])
            for key, value in changes.items():
                if value is None and key in ("name", "price", "sku", "stock", "is_active"):
                    continue
                setattr(product, key, value)
            product.updated_at = utcnow()
            await uow.products.update(product)
            await uow.commit()
        # Строки существующих заказов не меняются: в них снимок цены
        logger.info(f"Товар {product_id} изменён")
        return product

    async def delete(self, product_id: int, caller: Caller) -> None:
        ensure_admin(caller, "Только администраторы могут удалять товары")
        async with self._uow() as uow:
            if not await uow.products.get_by_id(product_id):
                raise NotFoundError(f"Товар {product_id} не найден")
            await uow.products.soft_delete(product_id, utcnow())
            await uow.commit()
        logger.info(f"Товар {product_id} удалён")

    async def _resolve_category(self, uow, ref: Ref) -> int:
        category_id = parse_ref(ref)
        if category_id is None or not await uow.categories.get_by_id(category_id):
            raise NotFoundError(f"Категория {ref!r} не найдена")
        return category_id

    async def _ensure_unique_sku(self, uow, sku: str) -> None:
        if await uow.products.get_by_sku(sku):
            raise ConflictError(f"Товар с артикулом {sku} уже существует")

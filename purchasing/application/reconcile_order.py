import logging
from typing import Optional, Union
from pydantic import BaseModel, Field

from purchasing.domain.models import Caller, Order, OrderStatus
from purchasing.domain.exceptions import EmptyOrderError, NotFoundError, OrderNotFoundError
from purchasing.domain.factories import new_order, new_order_line, stamp_created, stamp_updated
from purchasing.domain.policy import OrderAccessPolicy


logger = logging.getLogger(__name__)

Ref = Union[int, str, None]


def parse_ref(ref: Ref) -> Optional[int]:
    """Числовой id или IRI вида /api/products/3 -> 3. Иначе None"""
    if ref is None or isinstance(ref, bool):
        return None
    if isinstance(ref, int):
        return ref if ref > 0 else None
    tail = str(ref).strip().rstrip("/").rsplit("/", 1)[-1]
    if tail.isdigit() and int(tail) > 0:
        return int(tail)
    return None


class LinePayload(BaseModel):
    product: Ref = None
    quantity: int = Field(default=1, gt=0)


class OrderPayload(BaseModel):
    lines: Optional[list[LinePayload]] = None
    status: Optional[OrderStatus] = None
    notes: Optional[str] = None
    customer: Ref = None
    allow_empty: bool = False


class ReconcileResult(BaseModel):
    order: Order
    warnings: list[str] = Field(default_factory=list)


class ReconcileOrderUseCase:
    """Создание или полная замена содержимого заказа.

    Все шаги (удаление старых строк, расчёт цен, запись заказа и новых
    строк) выполняются в одной единице работы: commit один раз в конце,
    любая ошибка откатывает изменения целиком.
    """

    def __init__(self, unit_of_work, policy: Optional[OrderAccessPolicy] = None):
        self._uow = unit_of_work
        self._policy = policy or OrderAccessPolicy()

    async def __call__(self, order_id: Optional[int], payload: OrderPayload, caller: Caller) -> ReconcileResult:
        action = "Создание" if order_id is None else f"Изменение {order_id}"
        logger.info(f"{action} заказа пользователем {caller.id}")
        warnings: list[str] = []

        async with self._uow() as uow:
            # 1-2. Целевой заказ
            if order_id is None:
                self._policy.ensure_can_create(caller)
                customer_id = await self._resolve_customer(uow, payload, caller)
                order = new_order(customer_id)
            else:
                order = await uow.orders.get_by_id(order_id)
                if not order:
                    raise OrderNotFoundError(order_id)
                self._policy.ensure_can_update(caller, order)
                if payload.customer is not None:
                    order.customer_id = await self._resolve_customer(uow, payload, caller)

            # 3. Полная замена строк
            replace_lines = bool(payload.lines)
            if replace_lines:
                removed = order.clear_lines()
                if removed:
                    logger.info(f"Заказ {order.id}: удаляется {len(removed)} строк")

                # 4. Разрешение товаров и снимок цен
                for index, entry in enumerate(payload.lines):
                    product_id = parse_ref(entry.product)
                    product = await uow.products.get_by_id(product_id) if product_id else None
                    if not product:
                        message = f"Строка {index}: товар {entry.product!r} не найден, пропущена"
                        logger.warning(message)
                        warnings.append(message)
                        continue
                    order.add_line(new_order_line(product, entry.quantity))

            # 5. Статус и комментарий
            if payload.status is not None:
                order.status = payload.status
            if payload.notes is not None:
                order.notes = payload.notes

            # 6. Пересчёт суммы
            order.recalculate_total()

            if not order.lines and not (payload.allow_empty and caller.is_admin):
                raise EmptyOrderError()

            # 7. Запись заказа и строк
            if order.id is None:
                stamp_created(order)
                order.id = await uow.orders.create(order)
            else:
                stamp_updated(order)
                await uow.orders.update(order)

            if replace_lines:
                deleted = await uow.orders.delete_lines(order.id)
                logger.info(f"Заказ {order.id}: удалено из БД {deleted} строк")
                for line in order.lines:
                    line.id = await uow.orders.add_line(order.id, line)

            # 8. Перечитываем заказ
            saved = await uow.orders.get_by_id(order.id)
            await uow.commit()

        logger.info(
            f"Заказ {saved.id} ({saved.order_number}) сохранён: "
            f"{len(saved.lines)} строк, сумма {saved.total_amount}, статус {saved.status.value}"
        )
        return ReconcileResult(order=saved, warnings=warnings)

    async def _resolve_customer(self, uow, payload: OrderPayload, caller: Caller) -> int:
        if payload.customer is None:
            return caller.id
        customer_id = parse_ref(payload.customer)
        if customer_id is None:
            raise NotFoundError(f"Пользователь {payload.customer!r} не найден")
        self._policy.ensure_can_assign_customer(caller, customer_id)
        if customer_id != caller.id and not await uow.users.get_by_id(customer_id):
            raise NotFoundError(f"Пользователь {customer_id} не найден")
        return customer_id

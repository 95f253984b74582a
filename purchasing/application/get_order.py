from typing import List, Optional

from purchasing.domain.models import Caller, Order
from purchasing.domain.exceptions import OrderNotFoundError
from purchasing.domain.policy import OrderAccessPolicy
from purchasing.application.interfaces import OrderListQuery


class GetOrderUseCase:
    def __init__(self, unit_of_work, policy: Optional[OrderAccessPolicy] = None):
        self._uow = unit_of_work
        self._policy = policy or OrderAccessPolicy()

    async def __call__(self, order_id: int, caller: Caller) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(order_id)
            self._policy.ensure_can_view(caller, order)
            return order


class ListOrdersUseCase:
    def __init__(self, unit_of_work, policy: Optional[OrderAccessPolicy] = None):
        self._uow = unit_of_work
        self._policy = policy or OrderAccessPolicy()

    async def __call__(self, query: OrderListQuery, caller: Caller) -> List[Order]:
        # Не-администратор видит только свои заказы, что бы ни пришло в фильтре
        scoped = query.model_copy(update={"customer_id": self._policy.list_scope(caller)})
        async with self._uow() as uow:
            return await uow.orders.list(scoped)
